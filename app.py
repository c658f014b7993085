import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.chat.router import router as chat_router
from api.chat.schemas import ChatErrorResponse
from api.chat.service import get_chat_relay
from api.models.router import router as models_router

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5001
HEALTH_PAYLOAD = {"status": "OK", "message": "Gemini chat relay is running"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    relay = get_chat_relay()
    if relay.pool.is_empty:
        logger.warning("No GEMINI_API_KEY is set. Add GEMINI_API_KEY (and optionally GEMINI_API_KEY_2) to .env")
    else:
        logger.info("Gemini chat relay ready with %d API key(s)", len(relay.pool))
    yield


app = FastAPI(title="Gemini Chat Relay", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[],              # keep empty when using regex
    allow_origin_regex=".*",       # matches any origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)
app.include_router(models_router)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Invalid request body path=%s errors=%s", request.url.path, exc.errors())
    payload = ChatErrorResponse(error="Invalid request body", details=_format_validation_errors(exc))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=payload.model_dump())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error path=%s", request.url.path, exc_info=exc)
    payload = ChatErrorResponse(error="Internal Server Error", details=f"{type(exc).__name__}: {exc}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload.model_dump())


@app.get("/api/health")
def health() -> dict[str, str]:
    return dict(HEALTH_PAYLOAD)


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.getenv("PORT") or DEFAULT_PORT)
    host = os.getenv("HOST", "0.0.0.0")
    logger.info("Gemini chat relay running on port %d", port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
