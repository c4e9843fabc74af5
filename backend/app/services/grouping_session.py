from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from threading import Lock
from typing import Literal
import uuid

from app.core.config import get_settings
from app.core.exceptions import (
    GenerationCancelledError,
    InvalidConstraintError,
    ItemError,
    SessionNotFoundError,
)
from app.services.constraint_store import ConstraintStore, ExclusionPair, Partition, normalize_item
from app.services.feasibility import (
    MIN_GROUP_SIZE,
    FeasibilityReport,
    check_feasibility,
    clamp_group_size,
    max_group_size,
)
from app.services.partition_enumerator import DEFAULT_CAP, EnumerationResult, PartitionEnumerator
from app.services.repair_generator import DEFAULT_MAX_ATTEMPTS, RepairGenerator, RepairResult

GenerationMode = Literal["exhaustive", "repair"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionResult:
    mode: GenerationMode
    revision: int
    enumeration: EnumerationResult | None = None
    repair: RepairResult | None = None

    @property
    def partitions(self) -> list[Partition]:
        if self.enumeration is not None:
            return self.enumeration.partitions
        if self.repair is not None:
            return [self.repair.partition]
        return []


@dataclass(frozen=True)
class Combination:
    index: int
    total: int
    groups: Partition


@dataclass(frozen=True)
class _Snapshot:
    items: tuple[str, ...]
    group_size: int
    constraints: ConstraintStore
    revision: int
    generation: int


class GroupingSession:
    """Inputs for one grouping workflow plus the last result generated from them.

    Any change to items, group size or restrictions bumps ``revision`` and drops
    the stored result. Generators run on a snapshot outside the lock; a run whose
    revision or generation token is stale when it checks in is cancelled.
    """

    def __init__(self, session_id: str | None = None, *, max_items: int = 64) -> None:
        self.id = session_id or str(uuid.uuid4())
        self.max_items = max_items
        self._items: list[str] = []
        self._group_size = MIN_GROUP_SIZE
        self._constraints = ConstraintStore()
        self._revision = 0
        self._generation = 0
        self._result: SessionResult | None = None
        self._cursor = 0
        self._lock = Lock()

    @property
    def items(self) -> list[str]:
        with self._lock:
            return list(self._items)

    @property
    def group_size(self) -> int:
        return self._group_size

    @property
    def constraints(self) -> list[ExclusionPair]:
        with self._lock:
            return self._constraints.pairs

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def result(self) -> SessionResult | None:
        return self._result

    @property
    def cursor(self) -> int:
        return self._cursor

    def _invalidate(self) -> None:
        self._revision += 1
        self._result = None
        self._cursor = 0

    def add_item(self, name: str) -> str:
        item = normalize_item(name)
        if not item:
            raise ItemError("Item names must not be empty")
        with self._lock:
            if item in self._items:
                raise ItemError(f"Duplicate item: {item}", details={"item": item})
            if len(self._items) >= self.max_items:
                raise ItemError(
                    f"A session holds at most {self.max_items} items",
                    details={"max_items": self.max_items},
                )
            self._items.append(item)
            self._invalidate()
        return item

    def remove_item(self, name: str) -> list[ExclusionPair]:
        """Remove an item and every restriction that mentions it."""
        item = normalize_item(name)
        with self._lock:
            if item not in self._items:
                raise ItemError(f"Unknown item: {item}", details={"item": item})
            self._items.remove(item)
            removed = self._constraints.remove_item(item)
            self._invalidate()
        return removed

    def set_group_size(self, group_size: int) -> int:
        with self._lock:
            clamped = clamp_group_size(group_size, len(self._items))
            if clamped != self._group_size:
                self._group_size = clamped
                self._invalidate()
            return self._group_size

    def increment_group_size(self) -> int:
        return self.set_group_size(self._group_size + 1)

    def decrement_group_size(self) -> int:
        return self.set_group_size(self._group_size - 1)

    def add_constraint(self, first: str, second: str) -> bool:
        a = normalize_item(first)
        b = normalize_item(second)
        with self._lock:
            unknown = [item for item in (a, b) if item not in self._items]
            if unknown:
                raise InvalidConstraintError(
                    f"Restrictions can only name items in the session: {', '.join(unknown)}",
                    details={"unknown": unknown},
                )
            added = self._constraints.add(a, b)
            if added:
                self._invalidate()
            return added

    def remove_constraint(self, target: int | tuple[str, str]) -> ExclusionPair | None:
        with self._lock:
            removed = self._constraints.remove(target)
            if removed is not None:
                self._invalidate()
            return removed

    def partner_candidates(self, item: str) -> list[str]:
        name = normalize_item(item)
        with self._lock:
            if name not in self._items:
                return []
            return self._constraints.partner_candidates(name, self._items)

    def feasibility(self) -> FeasibilityReport:
        with self._lock:
            item_count = len(self._items)
            group_size = self._group_size
        if item_count == 0:
            return FeasibilityReport(
                feasible=False,
                max_group_size=max_group_size(0),
                missing_count=0,
                possible_groups=0,
            )
        return check_feasibility(item_count, group_size)

    def _snapshot(self) -> _Snapshot:
        with self._lock:
            self._generation += 1
            return _Snapshot(
                items=tuple(self._items),
                group_size=self._group_size,
                constraints=self._constraints.copy(),
                revision=self._revision,
                generation=self._generation,
            )

    def _is_stale(self, snapshot: _Snapshot) -> bool:
        return self._revision != snapshot.revision or self._generation != snapshot.generation

    def generate(
        self,
        mode: GenerationMode = "exhaustive",
        *,
        cap: int = DEFAULT_CAP,
        scan_limit: int | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: random.Random | None = None,
    ) -> SessionResult:
        snapshot = self._snapshot()

        def should_cancel() -> bool:
            return self._is_stale(snapshot)

        logger.info(
            "SESSION GENERATION START | session_id=%s | mode=%s | revision=%s | items=%s | group_size=%s",
            self.id,
            mode,
            snapshot.revision,
            len(snapshot.items),
            snapshot.group_size,
        )
        if mode == "exhaustive":
            enumeration = PartitionEnumerator(
                constraints=snapshot.constraints,
                cap=cap,
                scan_limit=scan_limit,
                should_cancel=should_cancel,
            ).run(snapshot.items, snapshot.group_size)
            result = SessionResult(mode=mode, revision=snapshot.revision, enumeration=enumeration)
        else:
            repair = RepairGenerator(
                constraints=snapshot.constraints,
                max_attempts=max_attempts,
                rng=rng,
                should_cancel=should_cancel,
            ).run(snapshot.items, snapshot.group_size)
            result = SessionResult(mode=mode, revision=snapshot.revision, repair=repair)

        with self._lock:
            if self._is_stale(snapshot):
                logger.info(
                    "SESSION GENERATION DISCARDED | session_id=%s | revision=%s | current_revision=%s",
                    self.id,
                    snapshot.revision,
                    self._revision,
                )
                raise GenerationCancelledError()
            self._result = result
            self._cursor = 0
        return result

    def current_combination(self) -> Combination | None:
        with self._lock:
            return self._combination()

    def move_cursor(self, step: int) -> Combination | None:
        with self._lock:
            if self._result is None or not self._result.partitions:
                return None
            last = len(self._result.partitions) - 1
            self._cursor = min(max(self._cursor + step, 0), last)
            return self._combination()

    def _combination(self) -> Combination | None:
        # caller holds self._lock
        if self._result is None or not self._result.partitions:
            return None
        partitions = self._result.partitions
        return Combination(index=self._cursor, total=len(partitions), groups=partitions[self._cursor])


class SessionRegistry:
    def __init__(self, *, max_items: int = 64) -> None:
        self._sessions: dict[str, GroupingSession] = {}
        self._lock = Lock()
        self.max_items = max_items

    def create(self) -> GroupingSession:
        session = GroupingSession(max_items=self.max_items)
        with self._lock:
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> GroupingSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFoundError(session_id)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


_registry = SessionRegistry(max_items=get_settings().max_items)


def get_session_registry() -> SessionRegistry:
    return _registry


def clear_session_registry() -> None:
    _registry.clear()
