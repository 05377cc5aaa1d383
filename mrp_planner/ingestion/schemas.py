"""
════════════════════════════════════════════════════════════════════════════════
INGESTION SCHEMAS - Pydantic Models for Uploaded Rows
════════════════════════════════════════════════════════════════════════════════

Schemas:
- ForecastRowSchema: one product / month forecast quantity
- SohRowSchema: stock on hand for one part code
- ImportResult: response of an upload
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# ═══════════════════════════════════════════════════════════════════════════════
# ROW SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════════

class ForecastRowSchema(BaseModel):
    """Forecast quantity for a product in the month starting at forecast_date."""

    product_code: str = Field(..., min_length=1, description="Finished product code")
    description: str = Field("", description="Product description")
    forecast_date: date = Field(..., description="First day of the forecast month")
    quantity: float = Field(0.0, description="Forecast shipped units")

    @field_validator("product_code", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return str(v).strip() if v is not None else ""

    @field_validator("forecast_date")
    @classmethod
    def first_of_month(cls, v: date) -> date:
        return v.replace(day=1)


class SohRowSchema(BaseModel):
    """Stock on hand for one component."""

    part_code: str = Field(..., min_length=1, description="Component part code")
    description: str = Field("N/A", description="Component description")
    stock: float = Field(..., description="Stock on hand")
    part_type: Optional[str] = Field(None, description="Part type")
    safety_stock: Optional[float] = Field(None, ge=0, description="Safety stock")

    @field_validator("part_code", mode="before")
    @classmethod
    def strip_part_code(cls, v):
        return str(v).strip() if v is not None else ""


# ═══════════════════════════════════════════════════════════════════════════════
# RESPONSE SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════════

class ImportResult(BaseModel):
    """Result of an upload."""
    success: bool
    imported_count: int = 0
    failed_count: int = 0
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    source_file: str
