"""Ordered set of collections that take part in backup and restore."""

from typing import Iterable, Iterator, Tuple

from ..config import DEFAULT_COLLECTIONS


class CollectionRegistry:
    """Fixed, ordered and duplicate-free list of collection names."""

    def __init__(self, names: Iterable[str] = DEFAULT_COLLECTIONS):
        ordered = []
        for name in names:
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"Collection name must be a non-empty string, got {name!r}")
            if name in ordered:
                raise ValueError(f"Duplicate collection in registry: {name}")
            ordered.append(name)
        if not ordered:
            raise ValueError("Registry must contain at least one collection")
        self._names: Tuple[str, ...] = tuple(ordered)

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    def extend(self, *names: str) -> "CollectionRegistry":
        """Return a new registry with extra collections appended."""
        return CollectionRegistry(self._names + names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __repr__(self) -> str:
        return f"CollectionRegistry({list(self._names)!r})"
