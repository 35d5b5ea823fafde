# app/services/tag_resolution_service.py
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.repositories.tag_repo import TagRepository
from app.services.ordering import (
    MISSING_POSITION,
    SYSTEM_FLAGS,
    filter_legacy,
    filter_snapshot,
    is_system_filter,
    order_filter_names,
    sort_system_list,
    used_tag_names,
    visible,
)

logger = logging.getLogger(__name__)


# ----- Tier results -----


@dataclass(frozen=True)
class SystemResult:
    """Featured / Free / All, answered from product flags and order columns."""

    products: list[Any] = field(default_factory=list)
    tier: str = "system"


@dataclass(frozen=True)
class JunctionResult:
    """Tag answered by the product_tags junction, ordered by order_position."""

    products: list[Any] = field(default_factory=list)
    tier: str = "junction"


@dataclass(frozen=True)
class LegacyResult:
    """Tag answered by the legacy `tags` column, ordered by priority."""

    products: list[Any] = field(default_factory=list)
    tier: str = "legacy"


@dataclass(frozen=True)
class SnapshotResult:
    """Tag answered in memory from an already loaded product list."""

    products: list[Any] = field(default_factory=list)
    tier: str = "snapshot"


@dataclass(frozen=True)
class EmptyResult:
    """Every tier failed; an empty list, not an error."""

    products: list[Any] = field(default_factory=list)
    tier: str = "empty"


ResolutionResult = Union[SystemResult, JunctionResult, LegacyResult, SnapshotResult, EmptyResult]


class TagResolutionService:
    """
    Turns a filter label into the ordered product list the grid shows.

    Tag lookup is a cascade of independent tiers, each returning a tagged
    result or None ("not answered, try the next one"):

        junction  ->  legacy  ->  snapshot  ->  empty

    Each tier can be called on its own, which is what the tests do.
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        junction_repo: ProductTagRepository,
        tag_repo: TagRepository,
    ):
        self.product_repo = product_repo
        self.junction_repo = junction_repo
        self.tag_repo = tag_repo

    # ----- Public API -----

    def resolve_filter(
        self,
        session: Session | None,
        filter_name: str,
        include_unpublished: bool = False,
        snapshot: Sequence[Any] | None = None,
    ) -> list[Any]:
        """
        Ordered, publish-gated products for a filter label.
        """
        return self.resolve(session, filter_name, include_unpublished, snapshot).products

    def resolve(
        self,
        session: Session | None,
        filter_name: str,
        include_unpublished: bool = False,
        snapshot: Sequence[Any] | None = None,
    ) -> ResolutionResult:
        """
        Same as resolve_filter, but tells which tier answered.
        """
        if is_system_filter(filter_name):
            return self.system_tier(session, filter_name, include_unpublished, snapshot)

        for tier in self._tag_tiers():
            result = tier(session, filter_name, include_unpublished, snapshot)
            if result is not None:
                return result

        logger.warning(f"All resolution tiers failed for tag '{filter_name}', returning empty list")
        return EmptyResult()

    def list_available_filters(
        self,
        session: Session | None,
        products: Sequence[Any],
        is_admin: bool,
    ) -> list[str]:
        """
        System triplet followed by every tag actually used by an in-scope
        product, in the Tag Store's display order.

        In scope: every product for admins, published ones otherwise.
        Tag Store unavailable => used tags alphabetically.
        """
        used = used_tag_names(visible(products, include_unpublished=is_admin))

        tag_order: dict[str, int] | None = None
        if session is None:
            logger.warning("Tag store not configured, ordering filters alphabetically")
        else:
            try:
                tag_order = self.tag_repo.order_by_name(session)
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Tag store query failed, ordering filters alphabetically: {e}")

        return order_filter_names(used, tag_order)

    # ----- Tiers -----

    def _tag_tiers(self) -> list[Callable[..., ResolutionResult | None]]:
        return [self.junction_tier, self.legacy_tier, self.snapshot_tier]

    def system_tier(
        self,
        session: Session | None,
        filter_name: str,
        include_unpublished: bool,
        snapshot: Sequence[Any] | None = None,
    ) -> SystemResult | SnapshotResult | EmptyResult:
        flag = SYSTEM_FLAGS[filter_name]
        only_published = not include_unpublished

        if session is not None:
            try:
                if flag is None:
                    rows = self.product_repo.list_all(session, only_published=only_published)
                else:
                    rows = self.product_repo.list_by_flag(session, flag, only_published=only_published)
                return SystemResult(sort_system_list(rows, filter_name))
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"System list '{filter_name}' query failed: {e}")

        if snapshot is not None:
            return SnapshotResult(filter_snapshot(snapshot, filter_name, include_unpublished))
        return EmptyResult()

    def junction_tier(
        self,
        session: Session | None,
        tag_name: str,
        include_unpublished: bool,
        snapshot: Sequence[Any] | None = None,
    ) -> JunctionResult | None:
        """
        Members of the tag through product_tags, ordered by order_position.

        None when the query fails or nothing visible comes back.
        """
        if session is None:
            return None

        try:
            rows = self.junction_repo.list_for_tag_name(session, tag_name)
            if not rows:
                logger.info(f"Junction returned no rows for tag '{tag_name}', falling back")
                return None

            positions: dict[uuid.UUID, int] = {}
            for row in rows:
                positions.setdefault(row.product_id, row.order_position)

            products = visible(
                self.product_repo.list_by_ids(session, list(positions)),
                include_unpublished,
            )
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning(f"Junction query failed for tag '{tag_name}', falling back: {e}")
            return None

        if not products:
            logger.info(f"Junction had no visible products for tag '{tag_name}', falling back")
            return None

        products.sort(key=lambda p: positions.get(p.id, MISSING_POSITION))
        return JunctionResult(products)

    def legacy_tier(
        self,
        session: Session | None,
        tag_name: str,
        include_unpublished: bool,
        snapshot: Sequence[Any] | None = None,
    ) -> LegacyResult | None:
        """
        Products whose legacy `tags` contain the name, ordered by priority.

        None only when the query fails; an empty match is a valid answer.
        """
        if session is None:
            return None

        try:
            rows: list[Product] = self.product_repo.list_all(
                session, only_published=not include_unpublished
            )
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Legacy tag query failed for tag '{tag_name}': {e}")
            return None

        logger.info(f"Using legacy tag array for tag '{tag_name}'")
        return LegacyResult(filter_legacy(rows, tag_name, include_unpublished))

    def snapshot_tier(
        self,
        session: Session | None,
        tag_name: str,
        include_unpublished: bool,
        snapshot: Sequence[Any] | None = None,
    ) -> SnapshotResult | None:
        if snapshot is None:
            return None
        logger.info(f"Resolving tag '{tag_name}' from the in-memory snapshot")
        return SnapshotResult(filter_snapshot(snapshot, tag_name, include_unpublished))


