# app/models/product.py
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field, Relationship

if TYPE_CHECKING:
    from app.models.product_tag import ProductTag


class Product(SQLModel, table=True):
    """
    Software product shown in the catalog grid.

    Ordering:
      - featured_order / free_order / all_order rank the product inside the
        matching system list only; NULL sorts last (sentinel 100).
      - priority is the coarse, tag-agnostic rank used by the legacy
        tag fallback.

    Membership:
      - product_tags is the authoritative per-tag membership (junction).
      - tags is the legacy shadow copy (list of names, or a comma-separated
        string in old rows). It is never synchronised with product_tags.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name of the software",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str | None = Field(default=None)

    icon_url: str | None = Field(
        default=None,
        description="Emoji or public Storage URL",
    )

    url: str | None = Field(
        default=None,
        description="External landing page",
    )

    image_url: str | None = Field(default=None)

    published: bool = Field(default=False, index=True)
    featured: bool = Field(default=False, index=True)
    free: bool = Field(default=False, index=True)

    featured_order: int | None = Field(default=None)
    free_order: int | None = Field(default=None)
    all_order: int | None = Field(default=None)

    priority: int | None = Field(default=None)

    tags: list[str] | str | None = Field(
        default=None,
        sa_column=Column(JSON(none_as_null=True), nullable=True),
        description="Legacy tag names (denormalized, best-effort)",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    product_tags: list["ProductTag"] = Relationship(
        back_populates="product",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
