"""
Submission Item Store

Persistence layer for submission items.
Provides InMemory (testing, local runs) and TypeDB (production) implementations.

INVARIANTS:
- (owner, id) is unique; a duplicate insert leaves the existing record alone
- Status updates are atomic conditional writes: existence, legality of the
  transition and the write itself happen under one lock / one transaction
- object_summary and sdes_correlation_id are never rewritten
- last_updated never goes backwards
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import DuplicateItemError, NothingToUpdateError, TransientIOError
from .models import ObjectSummary, SubmissionItem, SubmissionItemStatus
from .transitions import allowed_predecessors, assert_transition_allowed

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _next_timestamp(clock: Clock, previous: datetime) -> datetime:
    """Clock reading, nudged forward so last_updated strictly increases."""
    now = clock()
    if now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


# =============================================================================
# Store Protocol (Interface)
# =============================================================================

class SubmissionItemStore(ABC):
    """
    Abstract store for submission items.

    Two implementations:
    - InMemorySubmissionItemStore: For unit tests and local runs
    - TypeDBSubmissionItemStore: For production
    """

    @abstractmethod
    def insert(self, item: SubmissionItem) -> None:
        """Insert a new item. Raises DuplicateItemError if (owner, id) exists."""
        pass

    @abstractmethod
    def get(self, owner: str, item_id: str) -> Optional[SubmissionItem]:
        """Get item by (owner, id). Returns None if not found."""
        pass

    @abstractmethod
    def get_by_sdes_correlation_id(self, correlation_id: str) -> Optional[SubmissionItem]:
        """Get item by its SDES correlation id. Returns None if not found."""
        pass

    @abstractmethod
    def list(self, owner: str) -> List[SubmissionItem]:
        """All items for owner. Order is unspecified but stable within one call."""
        pass

    @abstractmethod
    def update(
        self,
        owner: str,
        item_id: str,
        status: SubmissionItemStatus,
        failure_reason: Optional[str] = None,
    ) -> SubmissionItem:
        """
        Atomically move (owner, id) to status.

        Raises NothingToUpdateError if the item does not exist or the
        transition from its current status is not allowed. Returns the
        updated snapshot.
        """
        pass


# =============================================================================
# In-Memory Implementation
# =============================================================================

class InMemorySubmissionItemStore(SubmissionItemStore):
    """
    In-memory store for unit testing and local runs.

    A single lock serializes every read-check-write, so concurrent updates
    to the same item produce one winner per transition.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        self._items: Dict[Tuple[str, str], SubmissionItem] = {}
        self._lock = threading.Lock()

    def insert(self, item: SubmissionItem) -> None:
        key = (item.owner, item.id)
        with self._lock:
            if key in self._items:
                raise DuplicateItemError(item.owner, item.id)
            self._items[key] = item
        logger.info(f"Inserted submission item: {item.owner}/{item.id}")

    def get(self, owner: str, item_id: str) -> Optional[SubmissionItem]:
        with self._lock:
            return self._items.get((owner, item_id))

    def get_by_sdes_correlation_id(self, correlation_id: str) -> Optional[SubmissionItem]:
        with self._lock:
            for item in self._items.values():
                if item.sdes_correlation_id == correlation_id:
                    return item
        return None

    def list(self, owner: str) -> List[SubmissionItem]:
        with self._lock:
            return [item for (item_owner, _), item in self._items.items() if item_owner == owner]

    def update(
        self,
        owner: str,
        item_id: str,
        status: SubmissionItemStatus,
        failure_reason: Optional[str] = None,
    ) -> SubmissionItem:
        key = (owner, item_id)
        with self._lock:
            current = self._items.get(key)
            if current is None:
                raise NothingToUpdateError("Nothing to update")
            assert_transition_allowed(current.status, status)

            updated = current.with_status(
                status,
                failure_reason,
                _next_timestamp(self._clock, current.last_updated),
            )
            self._items[key] = updated

        logger.info(
            f"Submission item {owner}/{item_id}: {current.status.value} → {status.value}"
        )
        return updated


# =============================================================================
# TypeDB Implementation (Production)
# =============================================================================

def _escape(s: Optional[str]) -> str:
    """Escape string for TypeQL."""
    if s is None:
        return ""
    return s.replace("\\", "\\\\").replace('"', '\\"')


def _datetime_literal(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z"


def _to_datetime(value: Any) -> datetime:
    """Normalize driver datetime values (native, driver wrapper or ISO string)."""
    if isinstance(value, datetime):
        dt = value
    elif hasattr(value, "datetime"):
        dt = value.datetime
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def item_key(owner: str, item_id: str) -> str:
    """Composite key enforcing (owner, id) uniqueness in the schema."""
    return f"{owner}/{item_id}"


_ITEM_MATCH = '''
    match $i isa submission-item,
          has item-key "{key}",
          has item-id $id,
          has owner $owner,
          has callback-url $cb,
          has item-status $status,
          has object-location $loc,
          has content-length $len,
          has content-md5 $md5,
          has object-last-modified $olm,
          has created-at $created,
          has last-updated $lu,
          has sdes-correlation-id $cid;
    try {{ $i has failure-reason $fr; }};
'''


class TypeDBSubmissionItemStore(SubmissionItemStore):
    """
    TypeDB-backed store for production (TypeDB 3.x driver API).

    INVARIANTS:
    - item-key (owner/id) is an @key attribute; the database rejects duplicates
      even when two inserts race past the existence check
    - update is one match-delete-insert whose match pins the stored status to
      the legal predecessors of the target; zero matched rows is NothingToUpdate
    - driver errors surface once as TransientIOError; nothing is retried here
    """

    def __init__(self, driver, database: str = "dms_submission", clock: Optional[Clock] = None):
        """
        Initialize with TypeDB driver.

        Args:
            driver: TypeDB driver instance
            database: Database name
            clock: Source of last_updated timestamps
        """
        self.driver = driver
        self.database = database
        self._clock = clock or utc_now

    @staticmethod
    def _exec_query(tx, query: str):
        result = tx.query(query)
        if hasattr(result, "resolve"):
            return result.resolve()
        return result

    @staticmethod
    def _to_rows(answer) -> List[Dict[str, Any]]:
        """Normalize concept rows into dicts keyed by variable name."""
        rows: List[Dict[str, Any]] = []
        if answer is None or not hasattr(answer, "as_concept_rows"):
            return rows
        for concept_row in answer.as_concept_rows():
            row: Dict[str, Any] = {}
            for col in concept_row.column_names():
                concept = concept_row.get(col)
                if concept is None:
                    continue
                key = col[1:] if col.startswith("$") else col
                if concept.is_attribute():
                    row[key] = concept.as_attribute().get_value()
                elif concept.is_value():
                    row[key] = concept.as_value().get()
            rows.append(row)
        return rows

    def _read_query(self, query: str) -> List[Dict[str, Any]]:
        from typedb.driver import TransactionType

        with self.driver.transaction(self.database, TransactionType.READ) as tx:
            return self._to_rows(self._exec_query(tx, query))

    @staticmethod
    def _row_to_item(row: Dict[str, Any]) -> SubmissionItem:
        return SubmissionItem(
            id=row["id"],
            owner=row["owner"],
            callback_url=row["cb"],
            status=SubmissionItemStatus(row["status"]),
            object_summary=ObjectSummary(
                location=row["loc"],
                content_length=int(row["len"]),
                content_md5=row["md5"],
                last_modified=_to_datetime(row["olm"]),
            ),
            sdes_correlation_id=row["cid"],
            created=_to_datetime(row["created"]),
            last_updated=_to_datetime(row["lu"]),
            failure_reason=row.get("fr"),
        )

    def insert(self, item: SubmissionItem) -> None:
        from typedb.driver import TransactionType, TypeDBDriverException

        key = item_key(item.owner, item.id)
        summary = item.object_summary

        query = f'''
            insert $i isa submission-item,
                has item-key "{_escape(key)}",
                has item-id "{_escape(item.id)}",
                has owner "{_escape(item.owner)}",
                has callback-url "{_escape(item.callback_url)}",
                has item-status "{item.status.value}",
                has object-location "{_escape(summary.location)}",
                has content-length {summary.content_length},
                has content-md5 "{_escape(summary.content_md5)}",
                has object-last-modified {_datetime_literal(summary.last_modified)},
                has created-at {_datetime_literal(item.created)},
                has last-updated {_datetime_literal(item.last_updated)},
                has sdes-correlation-id "{_escape(item.sdes_correlation_id)}"'''
        if item.failure_reason:
            query += f',\n                has failure-reason "{_escape(item.failure_reason)}"'
        query += ";"

        try:
            with self.driver.transaction(self.database, TransactionType.WRITE) as tx:
                existing = self._to_rows(self._exec_query(
                    tx, f'match $i isa submission-item, has item-key "{_escape(key)}";'
                ))
                if existing:
                    raise DuplicateItemError(item.owner, item.id)
                self._exec_query(tx, query)
                tx.commit()
        except TypeDBDriverException as e:
            # Lost a race on the @key constraint, or the database is unreachable
            try:
                existing = self.get(item.owner, item.id)
            except TypeDBDriverException:
                existing = None
            if existing is not None:
                raise DuplicateItemError(item.owner, item.id) from e
            raise TransientIOError(f"TypeDB insert failed: {e}") from e

        logger.info(f"Inserted submission item: {item.owner}/{item.id}")

    def get(self, owner: str, item_id: str) -> Optional[SubmissionItem]:
        rows = self._read_query(_ITEM_MATCH.format(key=_escape(item_key(owner, item_id))))
        if not rows:
            return None
        return self._row_to_item(rows[0])

    def get_by_sdes_correlation_id(self, correlation_id: str) -> Optional[SubmissionItem]:
        rows = self._read_query(f'''
            match $i isa submission-item,
                  has sdes-correlation-id "{_escape(correlation_id)}",
                  has owner $owner,
                  has item-id $id;
        ''')
        if not rows:
            return None
        return self.get(rows[0]["owner"], rows[0]["id"])

    def list(self, owner: str) -> List[SubmissionItem]:
        rows = self._read_query(f'''
            match $i isa submission-item,
                  has owner "{_escape(owner)}",
                  has item-id $id,
                  has callback-url $cb,
                  has item-status $status,
                  has object-location $loc,
                  has content-length $len,
                  has content-md5 $md5,
                  has object-last-modified $olm,
                  has created-at $created,
                  has last-updated $lu,
                  has sdes-correlation-id $cid;
            try {{ $i has failure-reason $fr; }};
        ''')
        items = [self._row_to_item({**row, "owner": owner}) for row in rows]
        return sorted(items, key=lambda item: item.id)

    def _conditional_update_query(
        self,
        key: str,
        status: SubmissionItemStatus,
        failure_reason: Optional[str],
        last_updated: datetime,
    ) -> str:
        """
        One match-delete-insert. The match only binds when the stored status
        is a legal predecessor of status, so an illegal or lost transition
        matches zero rows.
        """
        predecessors = sorted(s.value for s in allowed_predecessors(status))
        pinned = " or ".join(f'{{ $s == "{value}"; }}' for value in predecessors)

        query = (
            f'match $i isa submission-item, has item-key "{key}",\n'
            f'      has item-status $s, has last-updated $lu;\n'
            f'{pinned};\n'
            f'try {{ $i has failure-reason $fr; }};\n'
            f'delete has $s of $i; has $lu of $i; try {{ has $fr of $i; }};\n'
            f'insert $i has item-status "{status.value}", '
            f'has last-updated {_datetime_literal(last_updated)}'
        )
        if status == SubmissionItemStatus.FAILED and failure_reason is not None:
            query += f', has failure-reason "{_escape(failure_reason)}"'
        return query + ";"

    def update(
        self,
        owner: str,
        item_id: str,
        status: SubmissionItemStatus,
        failure_reason: Optional[str] = None,
    ) -> SubmissionItem:
        from typedb.driver import TransactionType, TypeDBDriverException

        if not allowed_predecessors(status):
            raise NothingToUpdateError("Nothing to update")

        key = _escape(item_key(owner, item_id))
        try:
            with self.driver.transaction(self.database, TransactionType.WRITE) as tx:
                # last-updated only feeds the timestamp; legality is decided by the write
                current = self._to_rows(self._exec_query(tx, f'''
                    match $i isa submission-item, has item-key "{key}", has last-updated $lu;
                '''))
                if not current:
                    raise NothingToUpdateError("Nothing to update")
                last_updated = _next_timestamp(self._clock, _to_datetime(current[0]["lu"]))

                written = self._to_rows(self._exec_query(
                    tx, self._conditional_update_query(key, status, failure_reason, last_updated)
                ))
                if not written:
                    logger.warning(f"Rejected update of {owner}/{item_id} → {status.value}")
                    raise NothingToUpdateError("Nothing to update")

                rows = self._to_rows(self._exec_query(tx, _ITEM_MATCH.format(key=key)))
                tx.commit()
        except TypeDBDriverException as e:
            raise TransientIOError(f"TypeDB update failed: {e}") from e

        logger.info(f"Submission item {owner}/{item_id} → {status.value}")
        return self._row_to_item(rows[0])
