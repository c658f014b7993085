from api.errors import ChatError, ConfigurationError
from api.models.schemas import ModelsResponse
from gemini_chat import get_primary_api_key, list_gemini_models


def list_models() -> ModelsResponse:
    # Always the primary key from the environment, not the relay's current one.
    api_key = get_primary_api_key()
    if not api_key:
        raise ConfigurationError(user_message="API key not configured")

    try:
        models = list_gemini_models(api_key)
    except Exception as exc:
        raise ChatError(details=str(exc), user_message="Failed to fetch models") from exc
    return ModelsResponse(models=models)
