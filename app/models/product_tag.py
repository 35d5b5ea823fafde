# app/models/product_tag.py
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship

from app.models.product import Product
from app.models.tag import Tag


class ProductTag(SQLModel, table=True):
    """
    Product <-> Tag membership.

    order_position ranks the product inside this one tag's list only.
    One row per (product_id, tag_id).
    """

    __tablename__ = "product_tags"
    __table_args__ = (
        UniqueConstraint("product_id", "tag_id", name="uq_product_tags_product_tag"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
        description="FK to products.id",
    )

    tag_id: uuid.UUID = Field(
        foreign_key="tags.id",
        index=True,
        description="FK to tags.id",
    )

    order_position: int = Field(default=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    product: Optional[Product] = Relationship(back_populates="product_tags")
    tag: Optional[Tag] = Relationship()
