# imagepack/models/profile.py
from dataclasses import dataclass
from enum import Enum
from typing import Dict

from pydantic import BaseModel, Field


class Profile(str, Enum):
    """Output target for a derivative image"""
    DESKTOP = "desktop"
    MOBILE = "mobile"

    @property
    def archive_name(self) -> str:
        return f"{self.value}_images.zip"


@dataclass(frozen=True)
class EncodingPolicy:
    """Fixed encoder settings applied to every variant"""
    format: str = "WEBP"
    extension: str = ".webp"
    quality: int = 100
    method: int = 6
    lossless: bool = False

    def save_options(self) -> dict:
        return {
            "format": self.format,
            "quality": self.quality,
            "method": self.method,
            "lossless": self.lossless,
        }


class ProfilesInfo(BaseModel):
    """Capabilities reported by the profiles endpoint"""
    widths: Dict[Profile, int] = Field(description="Target width in pixels per profile")
    format: str = Field(description="Output encoding")
    quality: int = Field(description="Encoder quality")
    method: int = Field(description="Encoder effort (0-6)")
    lossless: bool = Field(description="Whether lossless encoding is used")
    max_file_size_bytes: int = Field(description="Largest accepted upload per file")
    artifact_ttl_seconds: int = Field(description="Seconds before archives are deleted")
