from __future__ import annotations

from dataclasses import dataclass
import math

from app.core.exceptions import InfeasibleError

MIN_GROUP_SIZE = 2


@dataclass(frozen=True)
class FeasibilityReport:
    feasible: bool
    max_group_size: int
    missing_count: int
    possible_groups: int


def is_feasible(item_count: int, group_size: int) -> bool:
    if group_size < 1:
        return False
    return item_count >= 2 and item_count % group_size == 0


def max_group_size(item_count: int) -> int:
    """Largest group size that still yields at least two groups."""
    return max(item_count // 2, MIN_GROUP_SIZE)


def missing_count(item_count: int, group_size: int) -> int:
    if group_size < 1:
        return 0
    remainder = item_count % group_size
    return 0 if remainder == 0 else group_size - remainder


def possible_groups(item_count: int, group_size: int) -> int:
    if item_count <= 0 or group_size < 1:
        return 0
    return item_count // group_size


def clamp_group_size(group_size: int, item_count: int) -> int:
    return min(max(group_size, MIN_GROUP_SIZE), max_group_size(item_count))


def partition_count(item_count: int, group_size: int) -> int:
    """Number of distinct unordered partitions of ``item_count`` items into groups of ``group_size``.

    n! / (k!^(n/k) * (n/k)!), zero when the split is not exact.
    """
    if item_count == 0:
        return 1
    if group_size < 1 or item_count % group_size:
        return 0
    groups = item_count // group_size
    return math.factorial(item_count) // (math.factorial(group_size) ** groups * math.factorial(groups))


def check_feasibility(item_count: int, group_size: int) -> FeasibilityReport:
    return FeasibilityReport(
        feasible=is_feasible(item_count, group_size),
        max_group_size=max_group_size(item_count),
        missing_count=missing_count(item_count, group_size),
        possible_groups=possible_groups(item_count, group_size),
    )


def ensure_feasible(item_count: int, group_size: int) -> None:
    if group_size < MIN_GROUP_SIZE:
        raise InfeasibleError(
            f"Group size must be at least {MIN_GROUP_SIZE}",
            reason="group_size",
            details={"group_size": group_size},
        )
    if item_count < 2:
        raise InfeasibleError(
            "At least two items are needed to form groups",
            reason="too_few_items",
            details={"item_count": item_count},
        )
    if not is_feasible(item_count, group_size):
        raise InfeasibleError(
            f"{item_count} items cannot be split evenly into groups of {group_size}",
            reason="divisibility",
            details={"item_count": item_count, "group_size": group_size},
        )
