"""
Keeps a patched sequence's length consistent with the indices written to it.

A sequence's effective length is one plus its greatest written index, or its
pending length, or its original length, whichever the writes so far imply.
Shrinking the length drops pending items above the new length.
"""

import logging
from typing import Any, Optional

from immutable_staging.config import LENGTH
from immutable_staging.errors import ArrayInvariantError
from immutable_staging.write_cache import Patch

logger = logging.getLogger(__name__)


def parse_index(key: Any) -> Optional[int]:
    """Return `key` as a non-negative index, or None if it isn't one."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key if key >= 0 else None
    if isinstance(key, str) and key.isdigit() and key.isascii():
        return int(key)
    return None


def effective_length(patch: Optional[Patch], node: Any) -> int:
    """Pending length if one was written, else the original length."""
    if patch is not None and LENGTH in patch:
        return patch[LENGTH]
    return len(node)


def original_limit(patch: Optional[Patch], node: Any) -> int:
    """Number of leading original items still visible through the patch."""
    if patch is None or patch.cutoff is None:
        return len(node)
    return min(len(node), patch.cutoff)


def maintain_array_invariant(patch: Patch, key: Any, value: Any) -> Any:
    """Update `patch` for a write of `value` to `key` on a sequence node.

    Must run before the write itself is recorded. Returns the normalized key
    the write should be recorded under.

    Raises:
        ArrayInvariantError: If key is neither an index nor LENGTH, or a
            LENGTH write isn't a non-negative int.
    """
    patch.as_sequence = True
    current_length = effective_length(patch, patch.node)

    index = parse_index(key)
    if index is not None:
        if index + 1 > current_length:
            patch.values[LENGTH] = index + 1
        return index

    if key == LENGTH:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ArrayInvariantError(key, value, "length must be a non-negative int")
        if value < current_length:
            for i in [k for k in patch.values if isinstance(k, int) and k >= value]:
                patch.discard(i)
            if value < len(patch.node) and (patch.cutoff is None or value < patch.cutoff):
                patch.cutoff = value
            logger.debug(f"Shrank {type(patch.node).__name__} from {current_length} to {value}")
        return LENGTH

    raise ArrayInvariantError(key)
