from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from app.core.exceptions import InvalidConstraintError, ItemError

Group = tuple[str, ...]
Partition = tuple[Group, ...]


def normalize_item(value: str) -> str:
    return value.strip().lower()


@dataclass(frozen=True, eq=False)
class ExclusionPair:
    """Two items that must never share a group.

    ``first``/``second`` keep the order the pair was entered in; equality and
    hashing are over the unordered pair.
    """

    first: str
    second: str

    @property
    def key(self) -> frozenset[str]:
        return frozenset((self.first, self.second))

    def involves(self, item: str) -> bool:
        return item in (self.first, self.second)

    def partner_of(self, item: str) -> str | None:
        if item == self.first:
            return self.second
        if item == self.second:
            return self.first
        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExclusionPair):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


class ConstraintStore:
    def __init__(self, pairs: Iterable[tuple[str, str] | ExclusionPair] = ()) -> None:
        self._pairs: list[ExclusionPair] = []
        self._keys: set[frozenset[str]] = set()
        for pair in pairs:
            if isinstance(pair, ExclusionPair):
                self.add(pair.first, pair.second)
            else:
                self.add(*pair)

    def __len__(self) -> int:
        return len(self._pairs)

    def __iter__(self) -> Iterator[ExclusionPair]:
        return iter(list(self._pairs))

    def __contains__(self, pair: object) -> bool:
        if isinstance(pair, ExclusionPair):
            return pair.key in self._keys
        if isinstance(pair, tuple) and len(pair) == 2:
            return frozenset(normalize_item(item) for item in pair) in self._keys
        return False

    @property
    def pairs(self) -> list[ExclusionPair]:
        return list(self._pairs)

    def add(self, first: str, second: str) -> bool:
        """Store the pair; returns False when it was already present."""
        a = normalize_item(first)
        b = normalize_item(second)
        if not a or not b:
            raise InvalidConstraintError("Both items of a restriction must be non-empty")
        if a == b:
            raise InvalidConstraintError(
                f"An item cannot be restricted from itself: {a}",
                details={"item": a},
            )
        pair = ExclusionPair(a, b)
        if pair.key in self._keys:
            return False
        self._pairs.append(pair)
        self._keys.add(pair.key)
        return True

    def remove(self, target: int | tuple[str, str] | ExclusionPair) -> ExclusionPair | None:
        """Remove by position or by pair; absent targets are a no-op."""
        if isinstance(target, int):
            if not 0 <= target < len(self._pairs):
                return None
            removed = self._pairs.pop(target)
            self._keys.discard(removed.key)
            return removed

        if isinstance(target, ExclusionPair):
            key = target.key
        else:
            key = frozenset(normalize_item(item) for item in target)
        if key not in self._keys:
            return None
        for index, pair in enumerate(self._pairs):
            if pair.key == key:
                del self._pairs[index]
                self._keys.discard(key)
                return pair
        return None

    def remove_item(self, item: str) -> list[ExclusionPair]:
        """Drop every pair mentioning ``item``."""
        name = normalize_item(item)
        removed = [pair for pair in self._pairs if pair.involves(name)]
        if removed:
            self._pairs = [pair for pair in self._pairs if not pair.involves(name)]
            self._keys = {pair.key for pair in self._pairs}
        return removed

    def partners(self, item: str) -> set[str]:
        name = normalize_item(item)
        return {partner for pair in self._pairs if (partner := pair.partner_of(name)) is not None}

    def partner_candidates(self, item: str, items: Sequence[str]) -> list[str]:
        """Items that can still be paired with ``item`` as a new restriction."""
        name = normalize_item(item)
        if not name:
            return []
        blocked = self.partners(name)
        blocked.add(name)
        return [candidate for candidate in items if candidate not in blocked]

    def violates_group(self, group: Iterable[str]) -> bool:
        members = set(group)
        return any(pair.first in members and pair.second in members for pair in self._pairs)

    def violation_count(self, partition: Sequence[Sequence[str]]) -> int:
        group_of: dict[str, int] = {}
        for index, group in enumerate(partition):
            for member in group:
                group_of[member] = index
        count = 0
        for pair in self._pairs:
            first_group = group_of.get(pair.first)
            if first_group is not None and first_group == group_of.get(pair.second):
                count += 1
        return count

    def copy(self) -> "ConstraintStore":
        clone = ConstraintStore()
        clone._pairs = list(self._pairs)
        clone._keys = set(self._keys)
        return clone


def normalize_items(items: Iterable[str]) -> list[str]:
    """Normalize a caller-supplied item set, rejecting blanks and duplicates."""
    normalized: list[str] = []
    seen: set[str] = set()
    for raw in items:
        name = normalize_item(raw)
        if not name:
            raise ItemError("Item names must not be empty")
        if name in seen:
            raise ItemError(f"Duplicate item: {name}", details={"item": name})
        seen.add(name)
        normalized.append(name)
    return normalized
