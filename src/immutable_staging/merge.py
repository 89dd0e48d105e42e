"""
Merge engine: rebuilds a graph from the original root plus a WriteCache.

Walks the original graph once, memoized by node identity:

1. A node already rebuilt returns its memoized result, so a node shared by
   several parents maps to exactly one rebuilt node.
2. The node's own slots are overlaid with its pending writes.
3. Every composite slot value is rebuilt recursively; staging views left in
   fresh containers are unwrapped first.
4. If every resulting slot is the identical object the node already held,
   the node itself is reused. Otherwise a new node of the same shape is
   built from the slots.

The original graph is never mutated.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from immutable_staging.array_invariant import effective_length, original_limit
from immutable_staging.config import StagingOptions, get_options
from immutable_staging.errors import CycleDetectedError
from immutable_staging.nodes import (
    COMPOSITE_KINDS,
    NodeKind,
    build_mapping,
    build_sequence,
    iter_slots,
    node_kind,
)
from immutable_staging.staging_view import unwrap
from immutable_staging.write_cache import DELETED, Patch, WriteCache

logger = logging.getLogger(__name__)


class MergeEngine:
    """One-shot rebuild of a graph against a WriteCache.

    An engine owns its memo table; create a new engine per merge.
    """

    def __init__(self, cache: WriteCache, options: Optional[StagingOptions] = None):
        self.cache = cache
        self.options = options or get_options()
        # id(original) -> (original, rebuilt); the original is held so its id stays unique
        self._memo: Dict[int, Tuple[Any, Any]] = {}
        self._active: Set[int] = set()
        self.replaced = 0

    def merge(self, root: Any) -> Any:
        """Return the rebuilt root."""
        root = unwrap(root)
        if node_kind(root) not in COMPOSITE_KINDS:
            return root
        result = self.rebuild(root)
        logger.debug(
            f"Merged {len(self.cache)} patched nodes: visited={len(self._memo)}, "
            f"replaced={self.replaced}, root_replaced={result is not root}"
        )
        return result

    def rebuild(self, node: Any) -> Any:
        key = id(node)
        memoized = self._memo.get(key)
        if memoized is not None:
            return memoized[1]

        if self.options.detect_cycles:
            if key in self._active:
                raise CycleDetectedError(node)
            self._active.add(key)

        try:
            result = self._rebuild_uncached(node)
        finally:
            self._active.discard(key)

        self._memo[key] = (node, result)
        return result

    def _rebuild_uncached(self, node: Any) -> Any:
        patch = self.cache.get(node)
        kind = node_kind(node)

        if kind is NodeKind.SEQUENCE:
            original = list(node)
            candidate = self._sequence_candidate(node, patch)
        else:
            original = dict(iter_slots(node))
            candidate = self._mapping_candidate(original, patch)

        slots = candidate.items() if isinstance(candidate, dict) else enumerate(candidate)
        for slot, value in list(slots):
            child = unwrap(value)
            if node_kind(child) in COMPOSITE_KINDS:
                rebuilt = self.rebuild(child)
                if rebuilt is not value:
                    candidate[slot] = rebuilt

        if _same_slots(original, candidate):
            return node

        self.replaced += 1
        if kind is NodeKind.SEQUENCE or (patch is not None and patch.as_sequence):
            return build_sequence(node, candidate)
        return build_mapping(node, candidate)

    @staticmethod
    def _mapping_candidate(original: Dict[Any, Any], patch: Optional[Patch]) -> Dict[Any, Any]:
        candidate = dict(original)
        if patch is None:
            return candidate
        for key, value in patch.values.items():
            if value is DELETED:
                candidate.pop(key, None)
            else:
                candidate[key] = value
        return candidate

    def _sequence_candidate(self, node: Any, patch: Optional[Patch]) -> List[Any]:
        if patch is None:
            return list(node)
        length = effective_length(patch, node)
        limit = original_limit(patch, node)
        candidate = []
        for i in range(length):
            if i in patch:
                candidate.append(patch[i])
            elif i < limit:
                candidate.append(node[i])
            else:
                candidate.append(self.options.hole)
        return candidate


def _same_slots(original, candidate) -> bool:
    """True if both hold the same keys and identical values."""
    if len(original) != len(candidate):
        return False
    if isinstance(original, dict):
        return all(
            key in candidate and candidate[key] is value
            for key, value in original.items()
        )
    return all(a is b for a, b in zip(original, candidate))


def apply_writes(root: Any, cache: WriteCache, options: Optional[StagingOptions] = None) -> Any:
    """Rebuild `root` against `cache` with a fresh memo table."""
    return MergeEngine(cache, options).merge(root)
