# app/core/realtime.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

WATCHED_TABLES: tuple[str, ...] = ("products", "tags")


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class ChangeEvent:
    """
    One row change on a watched table.

    `new` is set for INSERT / UPDATE, `old` for UPDATE / DELETE (as far as
    the replica identity allows).
    """

    event_type: str
    table: str
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChangeEvent | None":
        """
        Normalize a postgres_changes payload.

        Accepts the Realtime wire shape
            {"data": {"type", "table", "record", "old_record"}, ...}
        and the flat client shape
            {"eventType", "table", "new", "old"}.
        """
        if not isinstance(payload, dict):
            return None

        data = payload.get("data")
        if isinstance(data, dict) and "type" in data:
            event_type = data.get("type")
            table = data.get("table")
            new = data.get("record")
            old = data.get("old_record")
        else:
            event_type = payload.get("eventType") or payload.get("type")
            table = payload.get("table")
            new = payload.get("new")
            old = payload.get("old")

        if not event_type or not table:
            return None

        return cls(
            event_type=str(getattr(event_type, "value", event_type)).upper(),
            table=table,
            new=new or None,
            old=old or None,
        )


ChannelFactory = Callable[[], Awaitable[Any]]


class RealtimeSubscription:
    """
    Owned handle on one Supabase Realtime channel watching products and tags.

    Lifecycle:
        disconnected -> connecting -> connected
    `error` carries the last failure message and is cleared on success.

    The channel comes from `channel_factory` (an async callable returning a
    fresh channel, or None when Realtime is not configured), so reconnect()
    always subscribes on a brand new topic.
    """

    def __init__(
        self,
        channel_factory: ChannelFactory,
        on_change: Callable[[ChangeEvent], None],
        schema: str = "public",
        tables: tuple[str, ...] = WATCHED_TABLES,
        enabled: bool = True,
    ):
        self.channel_factory = channel_factory
        self.on_change = on_change
        self.schema = schema
        self.tables = tables
        self.enabled = enabled

        self.state = ConnectionState.DISCONNECTED
        self.error: str | None = None
        self._channel: Any = None

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    async def open(self) -> None:
        if not self.enabled:
            logger.info("Realtime disabled, skipping subscription")
            return
        if self._channel is not None:
            return

        self.state = ConnectionState.CONNECTING
        try:
            channel = await self.channel_factory()
            if channel is None:
                logger.warning("Supabase Realtime not configured, staying disconnected")
                self.state = ConnectionState.DISCONNECTED
                return

            for table in self.tables:
                channel.on_postgres_changes(
                    event="*",
                    schema=self.schema,
                    table=table,
                    callback=self._handle_payload,
                )
            self._channel = channel
            await channel.subscribe(self._handle_status)
        except Exception as e:
            logger.error(f"Error setting up realtime subscription: {e}")
            self.error = str(e) or e.__class__.__name__
            self.state = ConnectionState.DISCONNECTED

    async def close(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None:
            logger.info("Cleaning up realtime subscription")
            try:
                await channel.unsubscribe()
            except Exception as e:
                logger.warning(f"Realtime unsubscribe failed: {e}")
        self.state = ConnectionState.DISCONNECTED

    async def reconnect(self) -> None:
        logger.info("Attempting to reconnect to realtime")
        await self.close()
        self.error = None
        await self.open()

    # ----- Channel callbacks -----

    def _handle_status(self, status: Any, err: Exception | None = None) -> None:
        value = str(getattr(status, "value", status)).upper()
        logger.info(f"Realtime subscription status: {value}")

        if value == "SUBSCRIBED":
            self.state = ConnectionState.CONNECTED
            self.error = None
        elif value == "CHANNEL_ERROR":
            self.state = ConnectionState.DISCONNECTED
            self.error = str(err) if err else "Failed to connect to realtime channel"
        elif value == "TIMED_OUT":
            self.state = ConnectionState.DISCONNECTED
            self.error = "Realtime connection timed out"
        elif value == "CLOSED":
            self.state = ConnectionState.DISCONNECTED

    def _handle_payload(self, payload: dict[str, Any]) -> None:
        event = ChangeEvent.from_payload(payload)
        if event is None:
            logger.warning(f"Ignoring unrecognized realtime payload: {payload!r}")
            return
        logger.info(f"{event.table} change received: {event.event_type}")
        self.on_change(event)
