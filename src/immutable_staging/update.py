"""
Entry points: stage an update, run the caller's mutator, merge the result.

    >>> shared = {'x': 1}
    >>> state = {'a': shared, 'b': shared}
    >>> new_state = apply_update(state, lambda view: view['a'].__setitem__('x', 2))
    >>> new_state['a'] is new_state['b']
    True
    >>> state['a']['x']
    1
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Generator, Mapping, TypeVar

from immutable_staging.config import get_options
from immutable_staging.merge import MergeEngine
from immutable_staging.nodes import is_composite
from immutable_staging.staging_view import StagingView, stage
from immutable_staging.write_cache import WriteCache

logger = logging.getLogger(__name__)

T = TypeVar('T')

_UNSET = object()


def apply_update(original: T, mutator: Callable[[Any], None]) -> T:
    """Apply the writes `mutator` makes to a staging view of `original`.

    Args:
        original: Root of an acyclic, possibly shared graph. Never mutated.
        mutator: Called once with a staging view shaped like `original`.
                 Its return value is ignored.

    Returns:
        The new root. It is `original` itself if no write changed anything
        reachable from it. Untouched subtrees are shared with `original`.

    Raises:
        Whatever `mutator` raises; no merge runs in that case.
        CycleDetectedError: If the graph contains a reference cycle.
    """
    session = StagedUpdate(original)
    try:
        mutator(session.view)
    except Exception:
        logger.debug(f"Mutator failed; discarding {len(session.cache)} pending patches")
        raise
    return session.commit()


class StagedUpdate:
    """One update in progress: a fresh write cache and the view over the root.

    Attributes:
        original: The root being updated.
        cache: Pending writes, private to this update.
        view: Staging view handed to callers.
        result: The merged root once commit() has run.
    """

    def __init__(self, original: Any):
        self.original = original
        self.cache = WriteCache()
        self.view = stage(self.cache, original)
        self._result = _UNSET

    @property
    def committed(self) -> bool:
        return self._result is not _UNSET

    @property
    def result(self) -> Any:
        if self._result is _UNSET:
            raise RuntimeError("StagedUpdate has not been committed")
        return self._result

    def commit(self) -> Any:
        """Merge the pending writes into a new graph. Runs at most once."""
        if self._result is _UNSET:
            options = get_options()
            self._result = MergeEngine(self.cache, options).merge(self.original)
            logger.debug(
                f"Committed update of {type(self.original).__name__}: "
                f"{len(self.cache)} patched nodes, root_replaced={self._result is not self.original}"
            )
        return self._result


@contextmanager
def staged_update(original: Any) -> Generator[StagedUpdate, None, None]:
    """Context manager form of apply_update.

    The block mutates `update.view`; the merge runs when the block exits
    normally. If the block raises, nothing is merged.

        >>> with staged_update(state) as update:
        ...     update.view['seven'] = 'eight is great'
        >>> new_state = update.result
    """
    update = StagedUpdate(original)
    yield update
    update.commit()


def merge_changes(original: T, changes: Mapping[Any, Any]) -> T:
    """Apply a nested tree of changes to `original`.

    A dict in `changes` whose key holds a composite value in the graph is
    merged into that value; anything else replaces the value outright.
    Integer keys address sequence items.

        >>> merge_changes(state, {'one': {'three': 20}, 'seven': 'eight'})
    """
    if not changes:
        return original

    def _merge_into(view: StagingView, patch: Mapping[Any, Any]) -> None:
        for key, value in patch.items():
            current = view.read(key) if view.has(key) else None
            if isinstance(value, dict) and isinstance(current, StagingView):
                _merge_into(current, value)
            else:
                view.write(key, value)

    if not is_composite(original):
        raise TypeError(f"Can't merge changes into a {type(original).__name__}")
    return apply_update(original, lambda view: _merge_into(view, changes))
