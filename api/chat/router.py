from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.chat.schemas import ChatErrorResponse, ChatRequest, ChatResponse
from api.errors import ChatError
from .service import ChatRelay, get_chat_relay

router = APIRouter(prefix="/api")


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={
        400: {"model": ChatErrorResponse, "description": "Message is missing"},
        500: {"model": ChatErrorResponse, "description": "Configuration or Gemini failure"},
    },
)
def chat_route(request: ChatRequest | None = None, relay: ChatRelay = Depends(get_chat_relay)):
    # A bodyless POST is treated as an empty request.
    request = request or ChatRequest()
    try:
        text = relay.handle_chat(request.message, request.history)
    except ChatError as exc:
        payload = ChatErrorResponse(error=exc.user_message, details=exc.details)
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump(exclude_none=True))
    return ChatResponse(message=text)
