"""Transactional document store on top of SQLAlchemy.

Documents are JSON maps grouped in named collections. Transactions follow
the usual document-database contract:

- all reads (`get`, `query`) happen before any write (`set`, `update`, `delete`)
- writes are buffered and applied together at commit
- `update` takes dotted field paths and supports `Increment` and
  `SERVER_TIMESTAMP` transforms
- every document read inside the transaction is version-checked at commit,
  so a concurrent commit to any of them aborts this attempt
- aborted attempts are re-run from scratch with exponential backoff
"""

import copy
import logging
import operator
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from budget_gateway.config import settings
from budget_gateway.domain.exceptions import TransactionConflictError
from budget_gateway.infrastructure.database.models import DocumentRecord
from budget_gateway.infrastructure.observability.metrics import (
    transaction_conflict_counter,
    transaction_duration_histogram,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Candidate conflict errors; is_conflict() decides which ones are retried
CONFLICT_ERRORS = (StaleDataError, IntegrityError, OperationalError)

# SQLSTATEs: serialization_failure, deadlock_detected, lock_not_available
_RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}
_UNIQUE_VIOLATION_SQLSTATE = "23505"
_SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")

Filter = Tuple[str, str, Any]
OrderBy = Tuple[str, str]

_MISSING = object()

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda actual, expected: actual in expected,
}


class _ServerTimestamp:
    """Sentinel resolved to the commit timestamp; copies stay the same object"""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_ServerTimestamp":
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class Increment:
    """Field transform: add `amount` to the current value (missing counts as 0)"""

    amount: float


@dataclass
class Document:
    """Snapshot of a stored document"""

    collection: str
    id: str
    data: Dict[str, Any]
    version: int = 0

    def get(self, path: str, default: Any = None) -> Any:
        return get_path(self.data, path, default)


class DocumentNotFoundError(LookupError):
    """`update` targeted a document that does not exist"""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"No document {collection}/{doc_id}")


def get_path(data: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted field path ("summary.totalSpent") from a document map"""
    node: Any = data
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_conflict(error: Exception) -> bool:
    """
    True when `error` means a concurrent transaction got there first.

    Stale versions always count. Integrity errors count only for duplicate
    keys, operational errors only for lock and serialization failures.
    Anything else (missing table, refused connection) is not retried.
    """
    if isinstance(error, StaleDataError):
        return True

    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    message = str(orig).lower()

    if isinstance(error, IntegrityError):
        return sqlstate == _UNIQUE_VIOLATION_SQLSTATE or "unique constraint failed" in message
    if isinstance(error, OperationalError):
        return sqlstate in _RETRYABLE_SQLSTATES or any(m in message for m in _SQLITE_LOCK_MESSAGES)
    return False


class Transaction:
    """Read-then-write unit of work bound to one SQLAlchemy session"""

    def __init__(self, session: Session, timestamp_factory: Callable[[], str] = utc_timestamp):
        self._session = session
        self._timestamp_factory = timestamp_factory
        self._records: Dict[Tuple[str, str], Optional[DocumentRecord]] = {}
        self._writes: List[Tuple[str, Tuple[str, str], Dict[str, Any]]] = []

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        self._ensure_reading()
        key = (collection, doc_id)
        if key not in self._records:
            # Row lock where supported; the version check at commit covers the rest
            self._records[key] = self._session.get(DocumentRecord, key, with_for_update=True)
        record = self._records[key]
        return _snapshot(record) if record is not None else None

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
    ) -> List[Document]:
        self._ensure_reading()
        records = self._session.execute(
            select(DocumentRecord).where(DocumentRecord.collection == collection)
        ).scalars().all()
        documents = apply_query([_snapshot(r) for r in records], filters, order_by)

        # Only matching documents join the read set
        by_id = {r.doc_id: r for r in records}
        for doc in documents:
            self._records.setdefault((collection, doc.id), by_id[doc.id])
        return documents

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or fully replace a document"""
        self._writes.append(("set", (collection, doc_id), copy.deepcopy(data)))

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Partially update an existing document; keys may be dotted paths"""
        self._writes.append(("update", (collection, doc_id), dict(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        """Remove an existing document"""
        self._writes.append(("delete", (collection, doc_id), {}))

    def commit(self) -> None:
        timestamp = self._timestamp_factory()
        written = set()

        for kind, key, payload in self._writes:
            if key not in self._records:
                self._records[key] = self._session.get(DocumentRecord, key)
            record = self._records[key]

            if kind == "set":
                data = _resolve(payload, timestamp)
                if record is None:
                    record = DocumentRecord(collection=key[0], doc_id=key[1], data=data)
                    self._session.add(record)
                    self._records[key] = record
                else:
                    record.data = data
            elif kind == "delete":
                if record is None:
                    raise DocumentNotFoundError(*key)
                self._session.delete(record)
                self._records[key] = None
            else:
                if record is None:
                    raise DocumentNotFoundError(*key)
                data = copy.deepcopy(record.data)
                apply_update(data, payload, timestamp)
                record.data = data
            written.add(key)

        # Touch documents that were only read so their versions are checked too
        for key, record in self._records.items():
            if record is not None and key not in written:
                flag_modified(record, "data")

        self._session.commit()

    def _ensure_reading(self) -> None:
        if self._writes:
            raise ValueError("Transaction reads must happen before any writes")


class DocumentStore:
    """Entry point for non-transactional reads and retrying transactions"""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        max_retries: int | None = None,
        backoff_base: float | None = None,
        timestamp_factory: Callable[[], str] = utc_timestamp,
    ):
        self.session_factory = session_factory
        self.max_retries = settings.transaction_max_retries if max_retries is None else max_retries
        self.backoff_base = settings.transaction_backoff_base if backoff_base is None else backoff_base
        self.timestamp_factory = timestamp_factory

    @staticmethod
    def new_id() -> str:
        """Auto-generated document id"""
        return uuid.uuid4().hex[:20]

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self.session_factory() as session:
            record = session.get(DocumentRecord, (collection, doc_id))
            return _snapshot(record) if record is not None else None

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
    ) -> List[Document]:
        with self.session_factory() as session:
            records = session.execute(
                select(DocumentRecord).where(DocumentRecord.collection == collection)
            ).scalars().all()
            return apply_query([_snapshot(r) for r in records], filters, order_by)

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        """
        Run `fn` inside a transaction and commit its buffered writes.

        Retry strategy:
        - Conflicts (see is_conflict) re-run `fn` on a fresh session
        - Other database errors roll back and propagate without a retry
        - Exponential backoff: base, 2*base, 4*base, ...
        - Any other exception rolls back and propagates unchanged

        Raises:
            TransactionConflictError: Still conflicting after max_retries attempts
        """
        attempt = 0
        while True:
            attempt += 1
            session = self.session_factory()
            try:
                with transaction_duration_histogram.time():
                    tx = Transaction(session, self.timestamp_factory)
                    result = fn(tx)
                    tx.commit()
                return result

            except CONFLICT_ERRORS as e:
                session.rollback()
                if not is_conflict(e):
                    raise
                transaction_conflict_counter.inc()

                if attempt >= self.max_retries:
                    logger.error(
                        f"Transaction aborted after {attempt} attempts: {e}",
                        extra={"step": "transaction_conflict", "attempts": attempt},
                    )
                    raise TransactionConflictError(attempt) from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                logger.warning(
                    "Transaction conflict, retrying",
                    extra={"step": "transaction_retry", "attempt": attempt, "backoff_seconds": backoff},
                )
                time.sleep(backoff)

            except Exception:
                session.rollback()
                raise

            finally:
                session.close()


def apply_update(data: Dict[str, Any], fields: Dict[str, Any], timestamp: str) -> None:
    """Apply dotted-path field updates in place, creating intermediate maps as needed"""
    for path, value in fields.items():
        parts = path.split(".")
        node = data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child

        leaf = parts[-1]
        if isinstance(value, Increment):
            current = node.get(leaf)
            if isinstance(current, bool) or not isinstance(current, (int, float)):
                current = 0
            node[leaf] = current + value.amount
        else:
            node[leaf] = _resolve(value, timestamp)


def apply_query(
    documents: Iterable[Document],
    filters: Sequence[Filter] = (),
    order_by: Sequence[OrderBy] = (),
) -> List[Document]:
    """Filter then order documents; documents missing a sort field go last"""
    for _, op, _ in filters:
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator {op!r}")

    matched = [doc for doc in documents if _matches(doc.data, filters)]

    for path, direction in reversed(list(order_by)):
        if direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort direction {direction!r}")
        present = [d for d in matched if get_path(d.data, path) is not None]
        absent = [d for d in matched if get_path(d.data, path) is None]
        present.sort(key=lambda d: get_path(d.data, path), reverse=direction == "desc")
        matched = present + absent

    return matched


def _matches(data: Dict[str, Any], filters: Sequence[Filter]) -> bool:
    for path, op, expected in filters:
        actual = get_path(data, path, _MISSING)
        if actual is _MISSING:
            return False
        try:
            if not _OPERATORS[op](actual, expected):
                return False
        except TypeError:
            return False
    return True


def _resolve(value: Any, timestamp: str) -> Any:
    if value is SERVER_TIMESTAMP:
        return timestamp
    if isinstance(value, Increment):
        return value.amount
    if isinstance(value, dict):
        return {k: _resolve(v, timestamp) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(v, timestamp) for v in value]
    return value


def _snapshot(record: DocumentRecord) -> Document:
    return Document(
        collection=record.collection,
        id=record.doc_id,
        data=copy.deepcopy(record.data),
        version=record.version or 0,
    )
