# imagepack/models/batch.py
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from imagepack.models.profile import Profile


@dataclass
class UploadItem:
    """One uploaded file, owned by the request"""
    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class Variant:
    """A resized, re-encoded image for a single profile"""
    profile: Profile
    name: str
    data: bytes


@dataclass
class ArchiveBundle:
    """An archive written for one profile of a batch"""
    profile: Profile
    storage_path: Path
    filename: str
    download_url: str = ""


class ProfileStats(BaseModel):
    """Size reduction statistics for one profile of one file"""
    size: int = Field(description="Encoded size in bytes")
    ratio: str = Field(description="Size reduction in percent, two decimals")
    time: str = Field(description="Processing time in milliseconds, two decimals")


class FileSuccessReport(BaseModel):
    """Report for a file that produced both variants"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(description="Original filename")
    original_size: int = Field(alias="originalSize", description="Upload size in bytes")
    desktop: ProfileStats
    mobile: ProfileStats


class FileErrorReport(BaseModel):
    """Report for a file that could not be processed"""
    name: str = Field(description="Original filename")
    error: str = Field(description="Human readable failure reason")


FileReport = Union[FileSuccessReport, FileErrorReport]


class ConvertResponse(BaseModel):
    """Response for a processed batch"""
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    processed_images: List[FileReport] = Field(
        alias="processedImages",
        description="One report per uploaded file, in upload order"
    )
    desktop_zip_url: str = Field(alias="desktopZipUrl", description="Download handle for desktop archive")
    mobile_zip_url: str = Field(alias="mobileZipUrl", description="Download handle for mobile archive")


class ConvertFailureResponse(BaseModel):
    """Response when a batch produced no archives"""
    success: Literal[False] = False
    message: str
