from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatTurn(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Any = Field(default=None, description="'user' or anything else for the model side")
    content: str | None = Field(default=None, description="Turn text")
    text: str | None = Field(default=None, description="Alternative field for the turn text")

    @property
    def body(self) -> str:
        return self.content or self.text or ""


class ChatRequest(BaseModel):
    message: str | None = Field(default=None, description="Message to send to Gemini")
    history: list[ChatTurn] | None = Field(default=None, description="Prior turns, oldest first")


class ChatResponse(BaseModel):
    message: str
    success: bool = True


class ChatErrorResponse(BaseModel):
    error: str
    details: str | None = None
    success: bool = False
