"""
Node model: the closed set of value shapes the engine operates over.

Every other module switches on NodeKind instead of probing Python types.
The type inspection lives here and nowhere else.

Shapes:
    SEQUENCE: list and tuple instances (named tuples excluded)
    MAPPING:  dict instances, dataclass instances and named tuples
    CALLABLE: a slot lookup on a record that resolves to a method
    SCALAR:   everything else, treated as an opaque leaf
"""

import copy
import inspect
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple


class NodeKind(Enum):
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    CALLABLE = "callable"


COMPOSITE_KINDS = frozenset({NodeKind.SEQUENCE, NodeKind.MAPPING})

# Sentinel distinguishing "no such slot" from a slot holding None.
MISSING = object()


def is_namedtuple(value: Any) -> bool:
    return isinstance(value, tuple) and hasattr(type(value), '_fields')


def is_record(value: Any) -> bool:
    """True for mapping nodes whose slots are attributes (dataclasses, named tuples)."""
    return is_namedtuple(value) or (is_dataclass(value) and not isinstance(value, type))


def node_kind(value: Any) -> NodeKind:
    """Classify a value reachable from the root."""
    if isinstance(value, dict) or is_record(value):
        return NodeKind.MAPPING
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


def is_composite(value: Any) -> bool:
    return node_kind(value) in COMPOSITE_KINDS


def _record_field_names(node: Any) -> Tuple[str, ...]:
    if is_namedtuple(node):
        return tuple(node._fields)
    return tuple(f.name for f in fields(node))


def _method_on_class(node: Any, key: Any):
    """Return the plain function `key` names on the node's class, or None."""
    if not isinstance(key, str):
        return None
    attr = inspect.getattr_static(type(node), key, None)
    if isinstance(attr, (staticmethod, classmethod)):
        return None
    return attr if inspect.isfunction(attr) else None


def slot_kind(node: Any, key: Any) -> NodeKind:
    """Kind of whatever `node` exposes under `key`.

    CALLABLE only arises on records: a name that is not a field but is a
    function defined on the record's class. Missing slots report SCALAR.
    """
    if is_record(node) and key not in _record_field_names(node):
        if _method_on_class(node, key) is not None:
            return NodeKind.CALLABLE
    value = get_slot(node, key, MISSING)
    if value is MISSING:
        return NodeKind.SCALAR
    return node_kind(value)


def get_method(node: Any, key: str):
    return _method_on_class(node, key)


def slot_names(node: Any) -> List[Any]:
    """Own slot keys of a composite node, in order."""
    kind = node_kind(node)
    if kind is NodeKind.SEQUENCE:
        return list(range(len(node)))
    if is_record(node):
        return list(_record_field_names(node))
    return list(node.keys())


def iter_slots(node: Any) -> Iterator[Tuple[Any, Any]]:
    """Yield (key, value) for every own slot of a composite node.

    Record fields are read with object.__getattribute__ so that custom
    attribute hooks on the record never run during a merge.
    """
    kind = node_kind(node)
    if kind is NodeKind.SEQUENCE:
        yield from enumerate(node)
    elif is_namedtuple(node):
        yield from zip(node._fields, node)
    elif is_record(node):
        for name in _record_field_names(node):
            yield name, object.__getattribute__(node, name)
    elif kind is NodeKind.MAPPING:
        yield from node.items()


def has_slot(node: Any, key: Any) -> bool:
    return get_slot(node, key, MISSING) is not MISSING


def get_slot(node: Any, key: Any, default: Any = MISSING) -> Any:
    """Read one own slot of a composite node, or return `default`."""
    kind = node_kind(node)
    if kind is NodeKind.SEQUENCE:
        if isinstance(key, int) and not isinstance(key, bool) and 0 <= key < len(node):
            return node[key]
        return default
    if is_record(node):
        if key in _record_field_names(node):
            return object.__getattribute__(node, key)
        return default
    if kind is NodeKind.MAPPING:
        # dict.get never triggers __missing__ (defaultdict would insert)
        try:
            return dict.get(node, key, default)
        except TypeError:
            return default
    return default


def build_mapping(node: Any, slots: Dict[Any, Any]) -> Any:
    """Return a new mapping node of the same type as `node` holding `slots`.

    Dicts are shallow-copied and refilled so subclasses (OrderedDict,
    defaultdict and its factory) survive. Dataclasses are shallow-copied and
    patched with object.__setattr__, which also works on frozen ones.
    Named tuples go through _replace.
    """
    if is_namedtuple(node):
        return node._replace(**slots)
    if is_record(node):
        new_node = copy.copy(node)
        for name, value in slots.items():
            object.__setattr__(new_node, name, value)
        return new_node
    new_node = copy.copy(node)
    new_node.clear()
    new_node.update(slots)
    return new_node


def build_sequence(node: Any, items: List[Any]) -> Any:
    """Return a new sequence of the same concrete type as `node`."""
    if type(node) is list:
        return items
    return type(node)(items)
