# app/models/tag.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Tag(SQLModel, table=True):
    """
    User-defined catalog tag.

    order_index is a dense 0..N-1 display order. The system pseudo-tags
    (Featured, Free, All) are not rows in this table.
    """

    __tablename__ = "tags"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
        description="Display label, unique in practice",
    )

    slug: str | None = Field(default=None, max_length=120)
    description: str | None = Field(default=None)
    color: str | None = Field(default=None, max_length=30)

    order_index: int = Field(default=0, ge=0, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
