from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import logging
import random

from app.core.exceptions import GenerationCancelledError
from app.services.constraint_store import ConstraintStore, Partition, normalize_items
from app.services.feasibility import ensure_feasible
from app.services.partition_enumerator import CancelCheck

DEFAULT_MAX_ATTEMPTS = 100

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepairResult:
    partition: Partition
    violation_count: int
    attempts: int

    @property
    def degraded(self) -> bool:
        return self.violation_count > 0


def chunk(sequence: Sequence[str], group_size: int) -> Partition:
    return tuple(tuple(sequence[start:start + group_size]) for start in range(0, len(sequence), group_size))


class RepairGenerator:
    """Best-effort random search for a low-violation partition.

    Each attempt shuffles the items and slices them into consecutive groups;
    the lowest-violation attempt wins and a zero-violation attempt ends the
    search. Groups keep shuffle order. Seeding ``rng`` makes runs reproducible.
    """

    def __init__(
        self,
        *,
        constraints: ConstraintStore | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: random.Random | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.constraints = constraints if constraints is not None else ConstraintStore()
        self.max_attempts = max_attempts
        self.random = rng if rng is not None else random.Random()
        self.should_cancel = should_cancel

    def run(self, items: Iterable[str], group_size: int) -> RepairResult:
        names = normalize_items(items)
        ensure_feasible(len(names), group_size)

        best_partition: Partition | None = None
        best_violations = 0
        attempts = 0
        for attempts in range(1, self.max_attempts + 1):
            if self.should_cancel is not None and self.should_cancel():
                raise GenerationCancelledError()
            shuffled = list(names)
            self.random.shuffle(shuffled)
            candidate = chunk(shuffled, group_size)
            violations = self.constraints.violation_count(candidate)
            if best_partition is None or violations < best_violations:
                best_partition = candidate
                best_violations = violations
            if violations == 0:
                break

        if best_violations:
            logger.warning(
                "REPAIR PARTITION DEGRADED | items=%s | group_size=%s | violations=%s | attempts=%s",
                len(names),
                group_size,
                best_violations,
                attempts,
            )
        else:
            logger.info(
                "REPAIR PARTITION FOUND | items=%s | group_size=%s | attempts=%s",
                len(names),
                group_size,
                attempts,
            )
        return RepairResult(partition=best_partition, violation_count=best_violations, attempts=attempts)


def repair_partition(
    items: Iterable[str],
    group_size: int,
    constraints: ConstraintStore | Iterable[tuple[str, str]] | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    random_seed: int | None = None,
    should_cancel: CancelCheck | None = None,
) -> RepairResult:
    store = constraints if isinstance(constraints, ConstraintStore) else ConstraintStore(constraints or ())
    generator = RepairGenerator(
        constraints=store,
        max_attempts=max_attempts,
        rng=random.Random(random_seed),
        should_cancel=should_cancel,
    )
    return generator.run(items, group_size)
