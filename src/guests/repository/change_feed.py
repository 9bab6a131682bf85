"""Change events on the guests table.

``PostgresChangeFeed`` listens on the channel the guests trigger notifies
(see migrations). ``LocalChangeFeed`` is fed in-process by the SQL write
model, for databases without LISTEN/NOTIFY.
"""

import abc
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import asyncpg

from src.config.database import asyncpg_dsn
from src.config.settings import settings

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    type: ChangeType
    table: str
    row_id: int | None = None
    unit_id: int | None = None


ChangeListener = Callable[[ChangeEvent], None]


def parse_notification(payload: str) -> ChangeEvent | None:
    """Parse a pg_notify payload; None when it is not a change event."""
    try:
        data = json.loads(payload)
        return ChangeEvent(
            type=ChangeType(data["type"]),
            table=data["table"],
            row_id=data.get("id"),
            unit_id=data.get("unit_id"),
        )
    except (ValueError, KeyError, TypeError):
        logger.warning(f"Ignoring malformed change notification: {payload!r}")
        return None


class ChangeFeed(abc.ABC):
    @abc.abstractmethod
    async def subscribe(self, listener: ChangeListener) -> None:
        """Start delivering every change event to ``listener``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def unsubscribe(self, listener: ChangeListener) -> None:
        raise NotImplementedError


class LocalChangeFeed(ChangeFeed):
    """In-process feed; writers call ``publish`` after committing."""

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    async def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    async def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


class PostgresChangeFeed(ChangeFeed):
    """Feed backed by LISTEN on a dedicated asyncpg connection."""

    def __init__(self, dsn: str | None = None, channel: str | None = None) -> None:
        self._dsn = dsn or asyncpg_dsn(settings.database_url)
        self._channel = channel or settings.guests_notify_channel
        self._connection: asyncpg.Connection | None = None
        self._listeners: list[ChangeListener] = []

    async def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)
        if self._connection is None:
            self._connection = await asyncpg.connect(self._dsn)
            await self._connection.add_listener(self._channel, self._on_notification)
            logger.info(f"Listening for guest changes on channel '{self._channel}'")

    async def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
        if not self._listeners and self._connection is not None:
            connection, self._connection = self._connection, None
            await connection.remove_listener(self._channel, self._on_notification)
            await connection.close()
            logger.info(f"Stopped listening on channel '{self._channel}'")

    def _on_notification(self, connection, pid: int, channel: str, payload: str) -> None:
        event = parse_notification(payload)
        if event is None:
            return
        for listener in list(self._listeners):
            listener(event)
