# app/services/catalog_view.py
import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, ContextManager, Protocol, Sequence

from sqlmodel import Session

from app.core.realtime import ChangeEvent, RealtimeSubscription
from app.database import session_scope
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.repositories.software_repo import SoftwareRepository
from app.repositories.tag_repo import TagRepository
from app.schemas.product import ProductRead
from app.schemas.tag import TagRead
from app.services.ordering import (
    FEATURED,
    SYSTEM_FILTERS,
    filter_snapshot,
    is_system_filter,
    order_filter_names,
    used_tag_names,
    visible,
)
from app.services.product_service import ProductService
from app.services.product_tag_service import ProductTagService
from app.services.tag_resolution_service import TagResolutionService
from app.services.tag_service import TagService

logger = logging.getLogger(__name__)


# ----- Sources -----


@dataclass
class CatalogSnapshot:
    products: list[Any] = field(default_factory=list)
    tags: list[Any] = field(default_factory=list)


class CatalogSource(Protocol):
    """
    Where a CatalogView gets its data from.
    """

    async def load_snapshot(self, include_unpublished: bool) -> CatalogSnapshot: ...

    async def available_filters(self, products: Sequence[Any], is_admin: bool) -> list[str]: ...

    async def resolve(self, filter_name: str, is_admin: bool, products: Sequence[Any]) -> list[Any]: ...

    async def reorder(self, filter_name: str, product_ids: list[Any]) -> bool: ...


def _to_read(product: Any) -> Any:
    if isinstance(product, Product):
        return ProductRead.model_validate(product, from_attributes=True)
    return product


class DatabaseCatalogSource:
    """
    Relational source. Every call opens its own session in a worker thread
    and hands back read models, never live ORM rows.
    """

    def __init__(
        self,
        products: ProductService,
        tags: TagService,
        memberships: ProductTagService,
        resolution: TagResolutionService,
        session_factory: Callable[[], ContextManager[Session | None]] = session_scope,
    ):
        self.products = products
        self.tags = tags
        self.memberships = memberships
        self.resolution = resolution
        self.session_factory = session_factory

    @classmethod
    def build(cls, session_factory: Callable[[], ContextManager[Session | None]] = session_scope) -> "DatabaseCatalogSource":
        product_repo = ProductRepository()
        tag_repo = TagRepository()
        junction_repo = ProductTagRepository()
        memberships = ProductTagService(junction_repo, product_repo, tag_repo)
        return cls(
            products=ProductService(product_repo, junction_repo, memberships),
            tags=TagService(tag_repo, junction_repo, product_repo),
            memberships=memberships,
            resolution=TagResolutionService(product_repo, junction_repo, tag_repo),
            session_factory=session_factory,
        )

    async def load_snapshot(self, include_unpublished: bool) -> CatalogSnapshot:
        return await asyncio.to_thread(self._load_snapshot, include_unpublished)

    async def available_filters(self, products: Sequence[Any], is_admin: bool) -> list[str]:
        return await asyncio.to_thread(self._available_filters, products, is_admin)

    async def resolve(self, filter_name: str, is_admin: bool, products: Sequence[Any]) -> list[Any]:
        return await asyncio.to_thread(self._resolve, filter_name, is_admin, products)

    async def reorder(self, filter_name: str, product_ids: list[Any]) -> bool:
        return await asyncio.to_thread(self._reorder, filter_name, product_ids)

    def _load_snapshot(self, include_unpublished: bool) -> CatalogSnapshot:
        with self.session_factory() as session:
            products = self.products.list_products(session, include_unpublished=include_unpublished)
            tags = self.tags.list_tags(session)
            return CatalogSnapshot(
                products=[_to_read(p) for p in products],
                tags=[TagRead.model_validate(t, from_attributes=True) for t in tags],
            )

    def _available_filters(self, products: Sequence[Any], is_admin: bool) -> list[str]:
        with self.session_factory() as session:
            return self.resolution.list_available_filters(session, products, is_admin)

    def _resolve(self, filter_name: str, is_admin: bool, products: Sequence[Any]) -> list[Any]:
        with self.session_factory() as session:
            result = self.resolution.resolve_filter(
                session, filter_name, include_unpublished=is_admin, snapshot=products
            )
            return [_to_read(p) for p in result]

    def _reorder(self, filter_name: str, product_ids: list[Any]) -> bool:
        with self.session_factory() as session:
            if session is None:
                logger.warning("Reorder skipped, database not configured")
                return False
            if is_system_filter(filter_name):
                return self.products.reorder_system_list(session, filter_name, product_ids)
            tag = self.tags.repo.get_by_name(session, filter_name)
            if tag is None:
                logger.warning(f"Reorder skipped, tag '{filter_name}' not found")
                return False
            return self.memberships.reorder_by_ids(session, tag.id, product_ids)


class LegacySoftwareSource:
    """
    JSON-file source used when the relational store is not configured.

    The file's predefined `tags` list is the tag display order. Reordering
    rewrites the item order in the file, which only succeeds on writable
    deployments.
    """

    def __init__(self, repo: SoftwareRepository):
        self.repo = repo
        self._tag_order: dict[str, int] = {}

    async def load_snapshot(self, include_unpublished: bool) -> CatalogSnapshot:
        data = await asyncio.to_thread(self.repo.load)
        self._tag_order = {name: index for index, name in enumerate(data.tags)}
        return CatalogSnapshot(
            products=visible(data.software, include_unpublished),
            tags=list(data.tags),
        )

    async def available_filters(self, products: Sequence[Any], is_admin: bool) -> list[str]:
        used = used_tag_names(visible(products, include_unpublished=is_admin))
        return order_filter_names(used, self._tag_order)

    async def resolve(self, filter_name: str, is_admin: bool, products: Sequence[Any]) -> list[Any]:
        return filter_snapshot(products, filter_name, include_unpublished=is_admin)

    async def reorder(self, filter_name: str, product_ids: list[Any]) -> bool:
        return await asyncio.to_thread(self._reorder, product_ids)

    def _reorder(self, product_ids: list[Any]) -> bool:
        if not self.repo.writable:
            logger.warning("Legacy data is read-only, reorder not persisted")
            return False

        data = self.repo.load()
        wanted = [str(pid) for pid in dict.fromkeys(product_ids)]
        by_id = {item.id: item for item in data.software}
        moved = [by_id[pid] for pid in wanted if pid in by_id]
        slots = [index for index, item in enumerate(data.software) if item.id in set(wanted)]

        # Listed items swap places among the slots they already occupy.
        for slot, item in zip(slots, moved):
            data.software[slot] = item
        return self.repo.save(data)


# ----- View -----


class Debouncer:
    """
    Trailing-edge debounce: every trigger() restarts the delay, the
    callback runs once after `delay` seconds of quiet.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[Any]], name: str = "refresh"):
        self.delay = delay
        self.callback = callback
        self.name = name
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach first: a trigger() during the callback schedules a new
        # run instead of cancelling this one halfway.
        self._task = None
        try:
            await self.callback()
        except Exception as e:
            logger.error(f"Debounced {self.name} failed: {e}")


class ReorderState(str, Enum):
    IDLE = "idle"
    OPTIMISTIC = "optimistic"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class CatalogView:
    """
    Locally held copy of the catalog, kept coherent with the store.

    State: products snapshot, tags, available filters, active filter and
    the visible (resolved) list for it.

    Refresh triggers:
      - change events (realtime)  -> debounced reload, `debounce_seconds`
      - focus regained            -> debounced reload, `focus_debounce_seconds`
      - poll loop while focused   -> same path as focus

    While refresh is suspended (an in-flight drag) triggers are ignored.
    A reload replaces the whole state at once under a lock, so running it
    twice with no store change leaves the view unchanged.
    """

    def __init__(
        self,
        source: CatalogSource,
        is_admin: bool = False,
        active_filter: str = FEATURED,
        debounce_seconds: float = 0.5,
        focus_debounce_seconds: float = 1.0,
        poll_interval_seconds: float = 10.0,
    ):
        self.source = source
        self.is_admin = is_admin
        self.active_filter = active_filter
        self.poll_interval_seconds = poll_interval_seconds

        self.products: list[Any] = []
        self.tags: list[Any] = []
        self.available_filters: list[str] = list(SYSTEM_FILTERS)
        self.visible: list[Any] = []
        self.loaded = False

        self.has_focus = True
        self.refresh_suspended = False
        self.reorder_state = ReorderState.IDLE
        self.subscription: RealtimeSubscription | None = None

        self._lock = asyncio.Lock()
        self._closed = False
        self._poll_task: asyncio.Task | None = None
        self._change_debouncer = Debouncer(debounce_seconds, self.reload, name="change refresh")
        self._focus_debouncer = Debouncer(focus_debounce_seconds, self.reload, name="focus refresh")

    # ----- Lifecycle -----

    async def start(
        self,
        subscription: RealtimeSubscription | None = None,
        poll: bool = True,
    ) -> None:
        await self.reload(force=True)

        if subscription is not None:
            self.subscription = subscription
            await subscription.open()

        if poll and self.poll_interval_seconds > 0:
            self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())

    async def close(self) -> None:
        """
        Cancel every pending timer, the poll loop and the subscription.
        No reload runs after this returns.
        """
        self._closed = True
        self._change_debouncer.cancel()
        self._focus_debouncer.cancel()

        if self._poll_task is not None:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None

        if self.subscription is not None:
            await self.subscription.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def refresh_pending(self) -> bool:
        return self._change_debouncer.pending or self._focus_debouncer.pending

    # ----- Loading -----

    async def reload(self, force: bool = False) -> bool:
        """
        Fetch snapshot and filters, re-resolve the active filter, and swap
        the whole state in one step.

        Returns False when skipped (closed, or suspended without force).
        """
        if self._closed:
            return False
        if self.refresh_suspended and not force:
            logger.info("Refresh suspended, skipping reload")
            return False

        async with self._lock:
            snapshot = await self.source.load_snapshot(self.is_admin)
            filters = await self.source.available_filters(snapshot.products, self.is_admin)
            resolved = await self.source.resolve(self.active_filter, self.is_admin, snapshot.products)

            self.products = snapshot.products
            self.tags = snapshot.tags
            self.available_filters = filters
            self.visible = resolved
            self.loaded = True

        logger.info(f"Catalog refreshed: {len(self.products)} products, '{self.active_filter}' shows {len(self.visible)}")
        return True

    async def set_filter(self, filter_name: str) -> list[Any]:
        async with self._lock:
            self.active_filter = filter_name
            self.visible = await self.source.resolve(filter_name, self.is_admin, self.products)
        return self.visible

    def filtered(self, filter_name: str) -> list[Any]:
        """
        Resolve a filter against the in-memory snapshot only.
        """
        if filter_name == self.active_filter:
            return list(self.visible)
        return filter_snapshot(self.products, filter_name, include_unpublished=self.is_admin)

    # ----- Triggers -----

    def notify_change(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        if self.refresh_suspended:
            logger.info(f"Refresh suspended, ignoring {event.table} {event.event_type}")
            return
        self._change_debouncer.trigger()

    def notify_focus(self) -> None:
        self.has_focus = True
        if self._closed or self.refresh_suspended:
            return
        self._focus_debouncer.trigger()

    def notify_blur(self) -> None:
        self.has_focus = False

    def suspend_refresh(self) -> None:
        self.refresh_suspended = True

    def resume_refresh(self) -> None:
        self.refresh_suspended = False

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_seconds)
            if self.has_focus and not self.refresh_suspended:
                self.notify_focus()

    # ----- Optimistic reorder -----

    async def move_product(self, old_index: int, new_index: int) -> ReorderState:
        """
        Move one product inside the visible list and persist the new order.

        Idle -> Optimistic (local list already updated)
             -> Committed   (store accepted the order)
             -> RolledBack  (store refused: previous list restored, then a
                             forced reload from the store)

        Holds the reload lock from the swap until the store answers.
        """
        async with self._lock:
            size = len(self.visible)
            if not (0 <= old_index < size and 0 <= new_index < size):
                raise IndexError(f"Move {old_index} -> {new_index} outside list of {size}")
            if old_index == new_index:
                return self.reorder_state

            previous = list(self.visible)
            moved = list(previous)
            moved.insert(new_index, moved.pop(old_index))

            self.suspend_refresh()
            try:
                self.visible = moved
                self.reorder_state = ReorderState.OPTIMISTIC

                ok = await self.source.reorder(self.active_filter, [p.id for p in moved])
                if ok:
                    self.reorder_state = ReorderState.COMMITTED
                    return self.reorder_state

                logger.warning(f"Reorder of '{self.active_filter}' failed, rolling back")
                self.visible = previous
                self.reorder_state = ReorderState.ROLLED_BACK
            finally:
                self.resume_refresh()

        await self.reload(force=True)
        return self.reorder_state
