from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List


# --- Schemas for API Responses ---

class ColorRecommendation(BaseModel):
    """
    A single recommended color with guidance on where to wear it.
    """
    name: str = Field(..., min_length=1, description="Human-friendly color name.")
    hex: str = Field(..., pattern=r"^#[0-9a-f]{6}$", description="CSS hex color, '#rrggbb'.")
    usage: str = Field(..., description="Free-text styling guidance for this color.")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Model confidence in [0, 1].")

    model_config = ConfigDict(frozen=True)

    @field_validator("hex", mode="before")
    @classmethod
    def lowercase_hex(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class AnalysisResult(BaseModel):
    """
    Palette recommendation returned by POST /api/analyze.
    Colors keep their insertion order, which is also the display order.
    """
    colors: List[ColorRecommendation] = Field(..., description="Ordered palette.")
    skin_tone: str = Field(..., alias="skinTone", description="Skin tone label, e.g. 'warm'.")
    season: str = Field(..., description="Seasonal coloring label, e.g. 'autumn'.")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True
    )


class ErrorResponse(BaseModel):
    """Error payload returned on any failed analysis."""
    error: str


class HealthResponse(BaseModel):
    status: str
    analyzer: str
