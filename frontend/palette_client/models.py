from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List


class UploadedImage(BaseModel):
    """
    One user-selected file, held in memory for the session.
    """
    filename: str
    content_type: str | None = None
    content: bytes = Field(repr=False)

    model_config = ConfigDict(frozen=True)

    @property
    def size(self) -> int:
        return len(self.content)


class ColorRecommendation(BaseModel):
    name: str
    hex: str = Field(..., pattern=r"^#[0-9a-f]{6}$")
    usage: str
    confidence: float = Field(..., ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)

    @field_validator("hex", mode="before")
    @classmethod
    def lowercase_hex(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class AnalysisResult(BaseModel):
    """
    Palette returned by the analysis endpoint. `colors` keeps the server's order.
    """
    colors: List[ColorRecommendation]
    skin_tone: str = Field(..., alias="skinTone")
    season: str

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True
    )


class ErrorKind(str, Enum):
    INVALID_INPUT = "InvalidInput"
    NETWORK_FAILURE = "NetworkFailure"
    SERVER_ERROR = "ServerError"
    MALFORMED_RESPONSE = "MalformedResponse"


class ClientError(BaseModel):
    """What the UI shows in its error banner."""
    kind: ErrorKind
    message: str

    model_config = ConfigDict(frozen=True)
