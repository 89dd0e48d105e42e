"""
Staging views: mutable-looking wrappers that record writes into a WriteCache.

A view never touches the node it wraps. Reads see the node's own slots
overlaid with pending writes; writes go into the cache, keyed by the node's
identity. Several views may wrap the same node at once, and they all observe
the same cache entry.

Explicit operations (available on every view):
    read(key), write(key, value), delete(key), keys(), has(key)

Python protocol sugar, one class per node shape:
    MappingView:  dict nodes, full MutableMapping protocol
    SequenceView: list/tuple nodes, full MutableSequence protocol plus sort()
    RecordView:   dataclass / named tuple nodes, attribute syntax

Example:
    >>> view = stage(WriteCache(), {'a': {'x': 1}})
    >>> view['a']['x'] = 2
    >>> view['a']['x']
    2
"""

from collections.abc import MutableMapping, MutableSequence
from types import MethodType
from typing import Any, List

from immutable_staging.array_invariant import (
    effective_length,
    maintain_array_invariant,
    original_limit,
    parse_index,
)
from immutable_staging.config import (
    CACHE_MARKER,
    LENGTH,
    PROTECTED_NAMES,
    SEQUENCE_MARKER,
    UNWRAP_MARKER,
    get_options,
)
from immutable_staging.errors import ProtectedNameError, WriteToMethodError
from immutable_staging.nodes import (
    MISSING,
    NodeKind,
    get_method,
    get_slot,
    is_record,
    node_kind,
    slot_kind,
    slot_names,
)
from immutable_staging.write_cache import DELETED, WriteCache


def stage(cache: WriteCache, value: Any) -> Any:
    """Wrap a composite value in the view for its shape; return scalars as-is."""
    if isinstance(value, StagingView):
        return value
    kind = node_kind(value)
    if kind is NodeKind.SEQUENCE:
        return SequenceView(cache, value)
    if kind is NodeKind.MAPPING:
        return RecordView(cache, value) if is_record(value) else MappingView(cache, value)
    return value


def unwrap(value: Any) -> Any:
    """Return the node behind a staging view, or `value` unchanged."""
    if isinstance(value, StagingView):
        return object.__getattribute__(value, '_target')
    return value


def is_staging_view(value: Any) -> bool:
    return isinstance(value, StagingView)


def _is_marker(key: Any) -> bool:
    return isinstance(key, str) and key in PROTECTED_NAMES


# RecordView routes record field and method names to read(), so shared view
# code reaches its own state and hooks through object.__getattribute__.
_internal = object.__getattribute__


def _target_of(view: 'StagingView') -> Any:
    return _internal(view, '_target')


def _cache_of(view: 'StagingView') -> WriteCache:
    return _internal(view, '_cache')


def _patch_of(view: 'StagingView'):
    return _cache_of(view).get(_target_of(view))


class StagingView:
    """Base view over (write cache, target node)."""

    __slots__ = ('_cache', '_target')

    def __init__(self, cache: WriteCache, target: Any):
        object.__setattr__(self, '_cache', cache)
        object.__setattr__(self, '_target', target)

    @property
    def _patch(self):
        return _patch_of(self)

    # ==================== EXPLICIT OPERATIONS ====================

    def read(self, key: Any) -> Any:
        """Read one property through the pending writes.

        Marker names answer with view internals. Methods come back bound to
        this view, so writes they make to `self` are recorded. Composite
        values come back wrapped in a view sharing this view's cache.
        """
        target = _target_of(self)
        if _is_marker(key):
            return _internal(self, '_read_marker')(key)

        if slot_kind(target, key) is NodeKind.CALLABLE:
            return MethodType(get_method(target, key), self)

        return stage(_cache_of(self), _internal(self, '_lookup')(key))

    def write(self, key: Any, value: Any) -> None:
        """Record a pending write of `value` to `key`.

        Raises:
            WriteToMethodError: If `key` names a method on the target.
            ProtectedNameError: If `key` is a reserved marker name.
            ArrayInvariantError: On sequences, if `key` is neither an index
                nor the length field.
        """
        target = _target_of(self)
        if slot_kind(target, key) is NodeKind.CALLABLE:
            raise WriteToMethodError(key)
        if _is_marker(key):
            raise ProtectedNameError(key)

        value = unwrap(value)
        key = _internal(self, '_prepare_write')(key, value)
        _cache_of(self).set(target, key, value)

    def delete(self, key: Any) -> None:
        raise TypeError(f"{type(_target_of(self)).__name__} slots can't be deleted through a staging view")

    def keys(self) -> List[Any]:
        """Own keys of the target plus keys with pending writes."""
        patch = _patch_of(self)
        own = slot_names(_target_of(self))
        if patch is None:
            return own
        keys = [k for k in own if patch.get(k, MISSING) is not DELETED]
        seen = set(keys)
        for key, value in patch.values.items():
            if value is not DELETED and key not in seen:
                keys.append(key)
        return keys

    def has(self, key: Any) -> bool:
        """Membership test that sees pending writes and deletions."""
        if key == UNWRAP_MARKER:
            return True
        patch = _patch_of(self)
        if patch is not None and key in patch:
            return patch[key] is not DELETED
        return get_slot(_target_of(self), key) is not MISSING

    # ==================== SHAPE HOOKS ====================

    def _read_marker(self, key: str) -> Any:
        if key == UNWRAP_MARKER:
            return _target_of(self)
        if key == CACHE_MARKER:
            return _cache_of(self)
        patch = _patch_of(self)
        return bool(patch is not None and patch.as_sequence)

    def _lookup(self, key: Any) -> Any:
        patch = _patch_of(self)
        if patch is not None and key in patch:
            value = patch[key]
            if value is DELETED:
                raise _internal(self, '_missing')(key)
            return value
        value = get_slot(_target_of(self), key)
        if value is MISSING:
            raise _internal(self, '_missing')(key)
        return value

    def _prepare_write(self, key: Any, value: Any) -> Any:
        return key

    def _missing(self, key: Any) -> Exception:
        return KeyError(key)

    def __repr__(self):
        patch = _patch_of(self)
        pending = len(patch) if patch is not None else 0
        return f"{type(self).__name__}({type(_target_of(self)).__name__}, {pending} pending)"


class MappingView(StagingView, MutableMapping):
    """View over a dict node."""

    __slots__ = ()

    def delete(self, key: Any) -> None:
        if _is_marker(key):
            raise ProtectedNameError(key)
        if not self.has(key):
            raise KeyError(key)
        self._cache.set(self._target, key, DELETED)

    def __getitem__(self, key):
        return self.read(key)

    def __setitem__(self, key, value):
        self.write(key, value)

    def __delitem__(self, key):
        self.delete(key)

    def __contains__(self, key):
        return self.has(key)

    def __iter__(self):
        return iter(self.keys())

    def __len__(self):
        return len(self.keys())


class SequenceView(StagingView, MutableSequence):
    """View over a list or tuple node.

    Every mutating method is written in terms of index and length writes, so
    each one passes through the array invariant.
    """

    __slots__ = ()

    # ==================== SHAPE HOOKS ====================

    def _lookup(self, key: Any) -> Any:
        if key == LENGTH:
            return len(self)
        index = parse_index(key)
        if index is None or index >= len(self):
            raise self._missing(key)

        patch = self._patch
        if patch is not None and index in patch:
            return patch[index]
        if index < original_limit(patch, self._target):
            return self._target[index]
        return get_options().hole

    def _prepare_write(self, key: Any, value: Any) -> Any:
        return maintain_array_invariant(self._cache.ensure(self._target), key, value)

    def _missing(self, key: Any) -> Exception:
        return IndexError(f"sequence index out of range: {key!r}")

    def keys(self) -> List[int]:
        return list(range(len(self)))

    def has(self, key: Any) -> bool:
        if key == LENGTH or key == UNWRAP_MARKER:
            return True
        index = parse_index(key)
        return index is not None and index < len(self)

    def delete(self, key: Any) -> None:
        index = parse_index(key)
        if index is None:
            raise IndexError(f"sequence index out of range: {key!r}")
        del self[index]

    # ==================== SEQUENCE PROTOCOL ====================

    def _normalize(self, index: Any) -> Any:
        """Resolve bool and negative int indices as list does; other keys pass through."""
        if isinstance(index, bool):
            index = int(index)
        if isinstance(index, int) and index < 0:
            index += len(self)
            if index < 0:
                raise IndexError("sequence index out of range")
        return index

    def _replace_all(self, items: List[Any]) -> None:
        """Make the sequence hold `items`, writing only slots that change."""
        length = len(self)
        for i, item in enumerate(items):
            if i >= length or unwrap(self.read(i)) is not unwrap(item):
                self.write(i, item)
        if len(items) < length:
            self.write(LENGTH, len(items))

    def __len__(self):
        return effective_length(self._patch, self._target)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self.read(i) for i in range(*index.indices(len(self)))]
        return self.read(self._normalize(index))

    def __setitem__(self, index, value):
        if isinstance(index, slice):
            items = self[:]
            items[index] = list(value)
            self._replace_all(items)
            return
        self.write(self._normalize(index), value)

    def __delitem__(self, index):
        if isinstance(index, slice):
            items = self[:]
            del items[index]
            self._replace_all(items)
            return
        length = len(self)
        index = parse_index(self._normalize(index))
        if index is None or index >= length:
            raise IndexError("sequence index out of range")
        for i in range(index, length - 1):
            self.write(i, self.read(i + 1))
        self.write(LENGTH, length - 1)

    def insert(self, index, value):
        length = len(self)
        if index < 0:
            index = max(0, length + index)
        index = min(index, length)
        for i in range(length, index, -1):
            self.write(i, self.read(i - 1))
        self.write(index, value)

    def clear(self):
        self.write(LENGTH, 0)

    def sort(self, *, key=None, reverse=False):
        self._replace_all(sorted(self[:], key=key, reverse=reverse))

    def __eq__(self, other):
        if isinstance(other, (list, tuple, SequenceView)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None


class RecordView(StagingView):
    """View over a dataclass instance or named tuple, using attribute syntax.

    Methods defined on the record's class are returned bound to the view:

        >>> @dataclass(frozen=True)
        ... class Counter:
        ...     count: int = 0
        ...     def bump(self):
        ...         self.count += 1
        >>> view.bump()   # recorded as a pending write of count

    Record fields and methods take precedence over the view's own attributes,
    so a field called `keys` reads the field. The explicit operations stay
    reachable through the class, e.g. `StagingView.keys(view)`.
    """

    __slots__ = ()

    def __getattribute__(self, name):
        if not (name.startswith('__') and name.endswith('__')):
            target = _target_of(self)
            if name in slot_names(target) or get_method(target, name) is not None:
                return StagingView.read(self, name)
        return _internal(self, name)

    def _prepare_write(self, key: Any, value: Any) -> Any:
        target = _target_of(self)
        if key not in slot_names(target):
            raise AttributeError(f"{type(target).__name__} has no field '{key}'")
        return key

    def _missing(self, key: Any) -> Exception:
        return AttributeError(f"{type(_target_of(self)).__name__} has no field '{key}'")

    def __getattr__(self, name):
        return StagingView.read(self, name)

    def __setattr__(self, name, value):
        StagingView.write(self, name, value)

    def __delattr__(self, name):
        StagingView.delete(self, name)
