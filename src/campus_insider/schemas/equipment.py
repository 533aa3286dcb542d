"""Schemas for equipment endpoints."""

from pydantic import BaseModel, Field


class EquipmentCreate(BaseModel):
    """Request body for sharing a piece of equipment."""

    name: str = Field(min_length=1, max_length=100)
    category: str = Field(min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=255)

    model_config = {"str_strip_whitespace": True}


class EquipmentUpdate(BaseModel):
    """Request body for updating a piece of equipment."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    category: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=255)

    model_config = {"str_strip_whitespace": True}
