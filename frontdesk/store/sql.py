import copy
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from frontdesk.config import Config
from frontdesk.errors import StoreError
from frontdesk.models.node import Node
from frontdesk.store.base import ABORT, StoreClient, TransactionResult, split_path

logger = logging.getLogger(__name__)


class SqlStore(StoreClient):
    """
    Store client over the ``nodes`` table.

    Conditional writes compare the row's ``version`` column, so the
    check-and-set holds across processes sharing the database, not only
    across coroutines in this one. Blocking calls run in the threadpool.
    """

    def __init__(self, session_factory, max_retries=None):
        super().__init__()
        self.session_factory = session_factory
        self.max_retries = max_retries or Config.TRANSACTION_MAX_RETRIES

    async def get(self, path):
        return await run_in_threadpool(self._get, path)

    async def set(self, path, value):
        collection, key = split_path(path)
        if key is None:
            await run_in_threadpool(self._replace_collection, collection, value or {})
        else:
            await run_in_threadpool(self._transaction, path, lambda _current: value)
        await self._notify(collection)

    async def update(self, path, fields):
        collection, key = split_path(path)
        if key is None:
            raise StoreError(f"update needs a record path, got {path!r}")

        def merge(current):
            merged = current or {}
            merged.update(copy.deepcopy(fields))
            return merged

        await run_in_threadpool(self._transaction, path, merge)
        await self._notify(collection)

    async def transaction(self, path, transform):
        collection, key = split_path(path)
        if key is None:
            raise StoreError(f"transaction needs a record path, got {path!r}")
        result = await run_in_threadpool(self._transaction, path, transform)
        if result.committed:
            await self._notify(collection)
        return result

    def _get(self, path):
        collection, key = split_path(path)
        try:
            with self.session_factory() as session:
                if key is not None:
                    row = session.get(Node, path)
                    return copy.deepcopy(row.value) if row else None
                rows = session.execute(select(Node).where(Node.collection == collection)).scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Read of {path} failed: {e}") from e
        if not rows:
            return None
        return {row.path.split("/", 1)[1]: copy.deepcopy(row.value) for row in rows}

    def _replace_collection(self, collection, records):
        try:
            with self.session_factory() as session:
                session.execute(delete(Node).where(Node.collection == collection))
                for key, value in records.items():
                    session.add(Node(path=f"{collection}/{key}", collection=collection, value=value, version=1))
                session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Write of {collection} failed: {e}") from e

    def _read_versioned(self, path):
        with self.session_factory() as session:
            row = session.get(Node, path)
            if row is None:
                return None, None
            return copy.deepcopy(row.value), row.version

    def _write_versioned(self, path, value, seen_version):
        """Write ``value`` only if the row still has ``seen_version``; False on conflict."""
        collection, _ = split_path(path)
        with self.session_factory() as session:
            if seen_version is None:
                if value is None:
                    return session.get(Node, path) is None
                session.add(Node(path=path, collection=collection, value=value, version=1))
            elif value is None:
                outcome = session.execute(
                    delete(Node).where(Node.path == path, Node.version == seen_version)
                )
                if outcome.rowcount != 1:
                    session.rollback()
                    return False
            else:
                outcome = session.execute(
                    update(Node)
                    .where(Node.path == path, Node.version == seen_version)
                    .values(value=value, version=seen_version + 1)
                )
                if outcome.rowcount != 1:
                    session.rollback()
                    return False
            session.commit()
            return True

    def _transaction(self, path, transform):
        last_error = None
        for attempt in range(1, self.max_retries + 1):
            try:
                current, version = self._read_versioned(path)
            except SQLAlchemyError as e:
                raise StoreError(f"Read of {path} failed: {e}") from e

            result = transform(copy.deepcopy(current))
            if result is ABORT:
                return TransactionResult(committed=False, value=current)

            try:
                if self._write_versioned(path, result, version):
                    return TransactionResult(committed=True, value=copy.deepcopy(result))
            except IntegrityError as e:
                # Another writer inserted the row first
                last_error = e
            except OperationalError as e:
                # SQLite reports lock contention as an operational error
                last_error = e
            except SQLAlchemyError as e:
                raise StoreError(f"Write of {path} failed: {e}") from e
            logger.debug(f"Conflict on {path}, retrying transaction (attempt {attempt})")

        raise StoreError(f"Transaction on {path} gave up after {self.max_retries} attempts: {last_error}")
