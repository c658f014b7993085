from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.chat.schemas import ChatErrorResponse
from api.errors import ChatError
from api.models.schemas import ModelsResponse
from .service import list_models

router = APIRouter(prefix="/api")


@router.get("/models", response_model=ModelsResponse, responses={500: {"model": ChatErrorResponse}})
def list_models_route():
    try:
        return list_models()
    except ChatError as exc:
        payload = ChatErrorResponse(error=exc.user_message, details=exc.details)
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump(exclude_none=True))
