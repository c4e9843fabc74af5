from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from itertools import combinations
import logging
from time import perf_counter

from app.core.exceptions import GenerationCancelledError, InfeasibleError, ScanLimitError
from app.services.constraint_store import ConstraintStore, Group, Partition, normalize_items
from app.services.feasibility import ensure_feasible, partition_count

DEFAULT_CAP = 1000
NO_VALID_COMBINATIONS_MESSAGE = "No valid combinations found with current restrictions."

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class Truncation:
    total: int
    cap: int


@dataclass
class EnumerationResult:
    partitions: list[Partition]
    pre_filter_total: int
    scanned: int
    truncation: Truncation | None = None
    scan_limit_reached: bool = False
    elapsed_ms: float = field(default=0.0, compare=False)

    @property
    def count(self) -> int:
        return len(self.partitions)

    @property
    def truncated(self) -> bool:
        return self.truncation is not None


@dataclass
class _Frame:
    anchor: str
    rest: list[str]
    candidates: Iterator[tuple[str, ...]]


def _frame(remaining: list[str], group_size: int) -> _Frame:
    anchor, rest = remaining[0], remaining[1:]
    return _Frame(anchor=anchor, rest=rest, candidates=combinations(rest, group_size - 1))


class PartitionWalk:
    """Canonical-order walk over the partitions of ``items`` into groups of ``group_size``.

    The smallest remaining item anchors each new group, so a partition is
    produced exactly once whatever the order of its groups or members. Groups
    come out sorted internally and ordered by their first member. The walk uses
    an explicit stack of frames (one per open group) instead of recursion.

    With ``constraints`` a candidate group that pairs two restricted items is
    skipped before its subtree is opened, so only violation-free partitions are
    yielded, still in canonical order. ``examined`` counts candidate groups
    pulled from the frames; once ``scan_limit`` of them have been examined and
    more remain, the walk stops and sets ``limit_reached``.
    """

    def __init__(
        self,
        items: Iterable[str],
        group_size: int,
        *,
        constraints: ConstraintStore | None = None,
        should_cancel: CancelCheck | None = None,
        scan_limit: int | None = None,
    ) -> None:
        self.items = sorted(items)
        self.group_size = group_size
        self.constraints = constraints
        self.should_cancel = should_cancel
        self.scan_limit = scan_limit
        self.examined = 0
        self.limit_reached = False

    def __iter__(self) -> Iterator[Partition]:
        remaining = self.items
        group_size = self.group_size
        if not remaining:
            yield ()
            return
        if group_size < 1 or len(remaining) % group_size:
            return

        stack = [_frame(remaining, group_size)]
        groups: list[Group] = []
        while stack:
            top = stack[-1]
            mates = next(top.candidates, None)
            if mates is None:
                stack.pop()
                if stack:
                    groups.pop()
                continue
            if self.scan_limit is not None and self.examined >= self.scan_limit:
                self.limit_reached = True
                return
            if self.should_cancel is not None and self.should_cancel():
                raise GenerationCancelledError()
            self.examined += 1

            group = (top.anchor, *mates)
            if self.constraints and self.constraints.violates_group(group):
                continue
            taken = set(mates)
            leftover = [item for item in top.rest if item not in taken]
            if not leftover:
                yield tuple(groups) + (group,)
                continue
            groups.append(group)
            stack.append(_frame(leftover, group_size))


def iter_partitions(
    items: Iterable[str],
    group_size: int,
    *,
    constraints: ConstraintStore | None = None,
    should_cancel: CancelCheck | None = None,
) -> Iterator[Partition]:
    """Yield the partitions of ``items`` in canonical order, skipping restricted groups."""
    return iter(PartitionWalk(items, group_size, constraints=constraints, should_cancel=should_cancel))


def canonicalize(partition: Sequence[Sequence[str]]) -> Partition:
    groups = [tuple(sorted(group)) for group in partition]
    return tuple(sorted(groups, key=lambda group: group[0] if group else ""))


class PartitionEnumerator:
    def __init__(
        self,
        *,
        constraints: ConstraintStore | None = None,
        cap: int = DEFAULT_CAP,
        scan_limit: int | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> None:
        if cap < 1:
            raise ValueError("cap must be at least 1")
        if scan_limit is not None and scan_limit < 1:
            raise ValueError("scan_limit must be at least 1")
        self.constraints = constraints if constraints is not None else ConstraintStore()
        self.cap = cap
        self.scan_limit = scan_limit
        self.should_cancel = should_cancel

    def run(self, items: Iterable[str], group_size: int) -> EnumerationResult:
        names = normalize_items(items)
        item_count = len(names)
        ensure_feasible(item_count, group_size)

        started = perf_counter()
        total = partition_count(item_count, group_size)
        logger.info(
            "PARTITION ENUMERATION START | items=%s | group_size=%s | constraints=%s | cap=%s | total=%s",
            item_count,
            group_size,
            len(self.constraints),
            self.cap,
            total,
        )

        found: list[Partition] = []
        walk = PartitionWalk(
            names,
            group_size,
            constraints=self.constraints,
            should_cancel=self.should_cancel,
            scan_limit=self.scan_limit,
        )
        for partition in walk:
            found.append(partition)
            if len(found) >= self.cap:
                break

        elapsed_ms = round((perf_counter() - started) * 1000, 2)
        if not found:
            if walk.limit_reached:
                logger.warning(
                    "PARTITION ENUMERATION SCAN LIMIT | items=%s | group_size=%s | examined=%s",
                    item_count,
                    group_size,
                    walk.examined,
                )
                raise ScanLimitError(
                    "Search limit reached before any valid combination was found.",
                    scan_limit=self.scan_limit,
                    examined=walk.examined,
                )
            logger.info(
                "PARTITION ENUMERATION EMPTY | items=%s | group_size=%s | examined=%s",
                item_count,
                group_size,
                walk.examined,
            )
            raise InfeasibleError(
                NO_VALID_COMBINATIONS_MESSAGE,
                reason="constraints",
                pre_filter_count=total,
                details={"scanned": walk.examined},
            )

        truncation = Truncation(total=total, cap=self.cap) if total > self.cap else None
        if truncation is not None:
            logger.warning(
                "PARTITION ENUMERATION TRUNCATED | total=%s | cap=%s | returned=%s",
                truncation.total,
                truncation.cap,
                len(found),
            )
        logger.info(
            "PARTITION ENUMERATION END | returned=%s | examined=%s | elapsed_ms=%s",
            len(found),
            walk.examined,
            elapsed_ms,
        )
        return EnumerationResult(
            partitions=found,
            pre_filter_total=total,
            scanned=walk.examined,
            truncation=truncation,
            scan_limit_reached=walk.limit_reached,
            elapsed_ms=elapsed_ms,
        )


def enumerate_partitions(
    items: Iterable[str],
    group_size: int,
    constraints: ConstraintStore | Iterable[tuple[str, str]] | None = None,
    cap: int = DEFAULT_CAP,
    *,
    scan_limit: int | None = None,
    should_cancel: CancelCheck | None = None,
) -> EnumerationResult:
    store = constraints if isinstance(constraints, ConstraintStore) else ConstraintStore(constraints or ())
    enumerator = PartitionEnumerator(
        constraints=store,
        cap=cap,
        scan_limit=scan_limit,
        should_cancel=should_cancel,
    )
    return enumerator.run(items, group_size)
