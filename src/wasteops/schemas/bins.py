"""Bin API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class BinCreateRequest(BaseModel):
    bin_id: Optional[str] = Field(None, alias="binId")
    location: str
    zone: str
    category: str = Field("General Waste", alias="binType")
    capacity: float = Field(..., ge=0)
    fill_level: float = Field(0.0, alias="fillLevel")
    weight: float = 0.0
    status: str = "active"
    notes: Optional[str] = None

    class Config:
        populate_by_name = True


class BinUpdateRequest(BaseModel):
    """Partial update; only the fields present in the request body are applied."""

    location: Optional[str] = None
    zone: Optional[str] = None
    category: Optional[str] = Field(None, alias="binType")
    capacity: Optional[Any] = None
    fill_level: Optional[Any] = Field(None, alias="fillLevel")
    weight: Optional[Any] = None
    status: Optional[str] = None
    last_collection: Optional[datetime] = Field(None, alias="lastCollection")
    notes: Optional[str] = None

    class Config:
        populate_by_name = True

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, by_alias=False)
