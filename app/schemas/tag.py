# app/schemas/tag.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class TagBrief(SQLModel):
    """
    Minimal tag info embedded in product memberships.
    """

    id: uuid.UUID
    name: str


class TagRead(SQLModel):
    """
    Tag representation for clients.
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    name: str
    slug: str | None = None
    description: str | None = None
    color: str | None = None
    order_index: int
    created_at: datetime


class TagCreate(SQLModel):
    """
    Payload for creating a tag.

    - slug is optional: if omitted, generated from `name`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    slug: str | None = None
    description: str | None = None
    color: str | None = Field(default=None, max_length=30)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class TagUpdate(SQLModel):
    """
    Partial update payload for tags.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    slug: str | None = None
    description: str | None = None
    color: str | None = Field(default=None, max_length=30)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class TagOrderUpdate(SQLModel):
    """
    Full display order of tags (all tag ids, first = order_index 0).
    """

    model_config = ConfigDict(extra="forbid")

    tag_ids: list[uuid.UUID]


class MembershipCreate(SQLModel):
    """
    Add a product to a tag; position defaults to the end of the tag's list.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    position: int | None = Field(default=None, ge=0)


class MembershipOrderUpdate(SQLModel):
    """
    New order of products inside one tag.

    Exactly one of product_slugs / product_ids must be given.
    """

    model_config = ConfigDict(extra="forbid")

    product_slugs: list[str] | None = None
    product_ids: list[uuid.UUID] | None = None
