# app/schemas/catalog.py
from typing import Union

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from app.schemas.product import ProductRead
from app.schemas.software import SoftwareItem

# Relational read model, or a legacy JSON item when no database is configured.
CatalogProduct = Union[ProductRead, SoftwareItem]


class CatalogState(SQLModel):
    """
    What the server-held catalog view currently shows.
    """

    active_filter: str
    available_filters: list[str]
    products: list[CatalogProduct]
    loaded: bool
    connection: str
    realtime_error: str | None = None
    refresh_suspended: bool = False
    reorder_state: str


class FilterSelect(SQLModel):
    model_config = ConfigDict(extra="forbid")

    filter_name: str = Field(min_length=1)


class MoveRequest(SQLModel):
    """
    Drag-and-drop move inside the visible list (indices into that list).
    """

    model_config = ConfigDict(extra="forbid")

    old_index: int = Field(ge=0)
    new_index: int = Field(ge=0)
