"""Pydantic schemas for micropost endpoints."""

from datetime import datetime

from pydantic import BaseModel


class MicropostCreateRequest(BaseModel):
    content: str


class MicropostResponse(BaseModel):
    id: int
    user_id: int
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class MicropostListResponse(BaseModel):
    items: list[MicropostResponse]
    total: int | None = None
