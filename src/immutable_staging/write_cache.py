"""
Identity-keyed side table of pending writes.

The cache lives for exactly one update. Each entry is a Patch for one node,
keyed by id(node). The Patch keeps a reference to its node so the id can't
be recycled by another object while the update is running.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional


class _Deleted:
    """Tombstone recorded for keys removed from a mapping node."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return 'DELETED'

    def __bool__(self):
        return False


DELETED = _Deleted()


@dataclass
class Patch:
    """Pending writes for one node.

    Attributes:
        node: The node the writes apply to.
        values: key -> pending value (may be DELETED)
        as_sequence: Materialize the merged result as a sequence.
        cutoff: Smallest length the node has been shrunk to. Original items
                at or above it are gone even if the length grows again.
    """
    node: Any
    values: Dict[Any, Any] = field(default_factory=dict)
    as_sequence: bool = False
    cutoff: Optional[int] = None

    def __contains__(self, key: Any) -> bool:
        return key in self.values

    def __getitem__(self, key: Any) -> Any:
        return self.values[key]

    def __len__(self) -> int:
        return len(self.values)

    def get(self, key: Any, default: Any = None) -> Any:
        return self.values.get(key, default)

    def discard(self, key: Any) -> None:
        self.values.pop(key, None)


class WriteCache:
    """Pending writes for one update, keyed by node identity."""

    def __init__(self):
        self._patches: Dict[int, Patch] = {}

    def get(self, node: Any) -> Optional[Patch]:
        return self._patches.get(id(node))

    def ensure(self, node: Any) -> Patch:
        """Return the node's patch, creating an empty one if needed."""
        patch = self._patches.get(id(node))
        if patch is None:
            patch = Patch(node)
            self._patches[id(node)] = patch
        return patch

    def set(self, node: Any, key: Any, value: Any) -> None:
        """Record one pending write. Staging views are stored as the node they wrap."""
        from immutable_staging.staging_view import unwrap
        self.ensure(node).values[key] = unwrap(value)

    def has(self, node: Any) -> bool:
        return id(node) in self._patches

    def __len__(self) -> int:
        return len(self._patches)

    def __iter__(self) -> Iterator[Patch]:
        return iter(self._patches.values())
