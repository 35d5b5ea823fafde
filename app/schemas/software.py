# app/schemas/software.py
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


SoftwareStatus = Literal["active", "beta", "coming-soon", "deprecated"]
SoftwarePricing = Literal["free", "premium", "freemium"]


class SoftwareItem(BaseModel):
    """
    One product in the legacy JSON catalog file.

    `published` / `free` mirror the relational Product flags so the same
    ordering rules apply to both sources.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    icon: str = ""
    description: str = ""
    tags: list[str] = []
    status: SoftwareStatus = "active"
    release_date: str = Field(default="", alias="releaseDate")
    featured: bool = False
    url: str = ""
    pricing: SoftwarePricing = "premium"

    @property
    def published(self) -> bool:
        return self.status == "active"

    @property
    def free(self) -> bool:
        return self.pricing == "free"


class SoftwareMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_updated: str = Field(default="", alias="lastUpdated")
    version: str = "1.0.0"
    total_software: int = Field(default=0, alias="totalSoftware")


class SoftwareData(BaseModel):
    """
    Whole legacy file: metadata, items, and the predefined tag list
    (which doubles as the tag display order).
    """

    metadata: SoftwareMetadata = SoftwareMetadata()
    software: list[SoftwareItem] = []
    tags: list[str] = []


class SoftwareWriteResult(BaseModel):
    success: bool
    message: str
