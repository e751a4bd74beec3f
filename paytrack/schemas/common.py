"""Shared schema bits."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request body accepting the dashboard's camelCase keys or snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActionResponse(BaseModel):
    success: bool = True
    message: str


class DeleteResponse(BaseModel):
    success: bool
    message: str
