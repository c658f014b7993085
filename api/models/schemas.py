from typing import Any

from pydantic import BaseModel, Field


class ModelsResponse(BaseModel):
    models: list[dict[str, Any]] = Field(default_factory=list)
    success: bool = True
