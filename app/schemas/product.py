# app/schemas/product.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.tag import TagBrief


class ProductTagRead(SQLModel):
    """
    One membership of a product, with the tag it points to.
    """

    id: uuid.UUID
    tag_id: uuid.UUID
    order_position: int
    tag: TagBrief | None = None


class ProductRead(SQLModel):
    """
    Product representation for clients, including tag memberships.
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    name: str
    slug: str
    description: str | None = None
    icon_url: str | None = None
    url: str | None = None
    image_url: str | None = None
    published: bool
    featured: bool
    free: bool
    featured_order: int | None = None
    free_order: int | None = None
    all_order: int | None = None
    priority: int | None = None
    tags: list[str] | str | None = None
    created_at: datetime
    product_tags: list[ProductTagRead] = []


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is optional: if omitted, generated from `name`.
    - tag_ids become junction memberships appended to each tag's list.
    - tags is the legacy name list, stored verbatim.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=255)
    slug: str | None = None
    description: str | None = None
    icon_url: str | None = None
    url: str | None = None
    image_url: str | None = None
    published: bool = False
    featured: bool = False
    free: bool = False
    priority: int | None = None
    tags: list[str] | None = None
    tag_ids: list[uuid.UUID] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty if provided")
        return v


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=255)
    slug: str | None = None
    description: str | None = None
    icon_url: str | None = None
    url: str | None = None
    image_url: str | None = None
    published: bool | None = None
    featured: bool | None = None
    free: bool | None = None
    priority: int | None = None
    tags: list[str] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty")
        return v


class PublishUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    published: bool


class ProductTagsUpdate(SQLModel):
    """
    Complete set of tag ids a product should belong to.
    """

    model_config = ConfigDict(extra="forbid")

    tag_ids: list[uuid.UUID]


class ProductOrderUpdate(SQLModel):
    """
    New order of a system list (Featured / Free / All), first = position 0.
    """

    model_config = ConfigDict(extra="forbid")

    product_ids: list[uuid.UUID]


class OperationResult(SQLModel):
    """
    Boolean outcome of a multi-row write. On failure the caller should
    reload authoritative state; partial writes are not compensated.
    """

    success: bool
