import asyncio
import copy
from typing import Any, Dict

from frontdesk.errors import StoreError
from frontdesk.store.base import ABORT, StoreClient, TransactionResult, split_path


class MemoryStore(StoreClient):
    """
    In-process store for tests and local tooling.

    Every call yields to the event loop before it touches data, so
    concurrent coroutines interleave between calls. The body of
    ``transaction`` has no suspension point, which makes it atomic with
    respect to other coroutines on the same loop.
    """

    def __init__(self, data: Dict[str, Dict[str, Any]] = None):
        super().__init__()
        self._data: Dict[str, Dict[str, Any]] = copy.deepcopy(data) if data else {}
        self._faults = []
        self.writes = []

    def fail_on(self, op: str, path_prefix: str, times: int = 1, skip: int = 0):
        """
        Make calls of ``op`` under ``path_prefix`` raise StoreError.

        The first ``skip`` matching calls go through, the next ``times`` fail.
        """
        self._faults.append([op, path_prefix, skip, times])

    def _check_fault(self, op, path):
        for fault in self._faults:
            fault_op, prefix, skip, remaining = fault
            if fault_op != op or not path.startswith(prefix) or remaining <= 0:
                continue
            if skip > 0:
                fault[2] -= 1
                continue
            fault[3] -= 1
            raise StoreError(f"Injected {op} failure on {path}")

    async def get(self, path):
        await asyncio.sleep(0)
        self._check_fault("get", path)
        collection, key = split_path(path)
        records = self._data.get(collection) or {}
        if key is None:
            return copy.deepcopy(records) if records else None
        return copy.deepcopy(records.get(key))

    async def set(self, path, value):
        await asyncio.sleep(0)
        self._check_fault("set", path)
        collection, key = split_path(path)
        if key is None:
            self._data[collection] = copy.deepcopy(value) if value else {}
        else:
            self._write(collection, key, value)
        self.writes.append(("set", path))
        await self._notify(collection)

    async def update(self, path, fields):
        await asyncio.sleep(0)
        self._check_fault("update", path)
        collection, key = split_path(path)
        if key is None:
            raise StoreError(f"update needs a record path, got {path!r}")
        record = copy.deepcopy(self._data.get(collection, {}).get(key)) or {}
        record.update(copy.deepcopy(fields))
        self._write(collection, key, record)
        self.writes.append(("update", path))
        await self._notify(collection)

    async def transaction(self, path, transform):
        await asyncio.sleep(0)
        self._check_fault("transaction", path)
        collection, key = split_path(path)
        if key is None:
            raise StoreError(f"transaction needs a record path, got {path!r}")
        current = copy.deepcopy(self._data.get(collection, {}).get(key))
        result = transform(copy.deepcopy(current))
        if result is ABORT:
            return TransactionResult(committed=False, value=current)
        self._write(collection, key, result)
        self.writes.append(("transaction", path))
        await self._notify(collection)
        return TransactionResult(committed=True, value=copy.deepcopy(result))

    def _write(self, collection, key, value):
        records = self._data.setdefault(collection, {})
        if value is None:
            records.pop(key, None)
        else:
            records[key] = copy.deepcopy(value)
