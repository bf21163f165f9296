"""
Pydantic schemas for the hit counter API.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class HitResponse(BaseModel):
    id: str
    hits: int = Field(..., ge=0)
    source: Literal["durable", "fallback"]


class BadgeSchemaResponse(BaseModel):
    schemaVersion: int = 1
    label: str
    message: str
    color: str
