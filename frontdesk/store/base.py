import copy
import itertools
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from frontdesk.errors import StoreError

logger = logging.getLogger(__name__)

# Returned by a transaction transform to leave the record untouched.
ABORT = object()

Transform = Callable[[Optional[dict]], Any]
Listener = Callable[[Dict[str, Any]], None]


@dataclass
class TransactionResult:
    committed: bool
    value: Any


def split_path(path: str):
    parts = [part for part in path.strip("/").split("/") if part]
    if not parts or len(parts) > 2:
        raise StoreError(f"Unsupported path: {path!r}")
    return parts[0], (parts[1] if len(parts) == 2 else None)


_PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
_push_counter = itertools.count()


def generate_push_key() -> str:
    """Time-ordered unique key: 8 chars of milliseconds, 12 chars of entropy."""
    millis = int(time.time() * 1000)
    prefix = []
    for _ in range(8):
        prefix.append(_PUSH_CHARS[millis % 64])
        millis //= 64
    prefix.reverse()
    entropy = int.from_bytes(os.urandom(8), "big") ^ next(_push_counter)
    suffix = []
    for _ in range(12):
        suffix.append(_PUSH_CHARS[entropy % 64])
        entropy //= 64
    return "".join(prefix) + "".join(suffix)


class StoreClient(ABC):
    """
    Key-addressed tree of records.

    Paths are either a collection (``"rooms"``) or a record inside it
    (``"rooms/<key>"``). Reading a collection returns ``{key: record}``.
    """

    def __init__(self):
        self._listeners: Dict[str, list] = {}

    @abstractmethod
    async def get(self, path: str):
        ...

    @abstractmethod
    async def set(self, path: str, value) -> None:
        ...

    @abstractmethod
    async def update(self, path: str, fields: dict) -> None:
        ...

    @abstractmethod
    async def transaction(self, path: str, transform: Transform) -> TransactionResult:
        """
        Atomically replace the record at ``path`` with ``transform(current)``.

        ``transform`` may run more than once when another writer gets in
        first, so it must not have side effects. Returning ``ABORT`` leaves
        the record as it is and yields an uncommitted result; returning
        None deletes the record.
        """

    async def push_key(self, collection: str) -> str:
        split_path(collection)
        return generate_push_key()

    def subscribe(self, collection: str, callback: Listener) -> Callable[[], None]:
        """Call ``callback`` with the collection snapshot after every write under it."""
        self._listeners.setdefault(collection, []).append(callback)

        def unsubscribe():
            listeners = self._listeners.get(collection, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    async def _notify(self, collection: str) -> None:
        listeners = list(self._listeners.get(collection, []))
        if not listeners:
            return
        snapshot = await self.get(collection) or {}
        for listener in listeners:
            try:
                listener(copy.deepcopy(snapshot))
            except Exception:
                # A broken subscriber must not fail the write that triggered it
                logger.exception(f"Subscriber on {collection} failed")
