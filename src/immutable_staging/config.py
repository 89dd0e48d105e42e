"""
Configuration for immutable_staging.

Two kinds of configuration live here:

Static data:
    The reserved marker names a staging view answers to, and the name of the
    length field on sequences. These never change at runtime.

Runtime options:
    A frozen StagingOptions instance held in a ContextVar. Use
    staging_options() to scope overrides to a block, the same way
    config_context() scopes configuration elsewhere:

        >>> with staging_options(hole=0):
        ...     apply_update(state, grow)
"""

import contextvars
import dataclasses
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Reading this name from a view returns the node it wraps (escape hatch).
UNWRAP_MARKER = "__staging_target__"
# Reading this name from a view returns the write cache it records into.
CACHE_MARKER = "__staging_cache__"
# Reading this name from a view returns the sequence-coercion flag of its patch.
SEQUENCE_MARKER = "__staging_as_sequence__"

PROTECTED_NAMES = frozenset({UNWRAP_MARKER, CACHE_MARKER, SEQUENCE_MARKER})

# Derived length field of sequence nodes.
LENGTH = "length"


@dataclass(frozen=True)
class StagingOptions:
    """Runtime options read once per update.

    Attributes:
        hole: Value used for sequence slots inside a grown range that were
              never written.
        detect_cycles: If True, the merge raises CycleDetectedError when it
                       meets a reference cycle instead of recursing until
                       Python's recursion limit.
    """
    hole: Any = None
    detect_cycles: bool = True


_default_options = StagingOptions()
current_options: contextvars.ContextVar[StagingOptions] = contextvars.ContextVar(
    'current_staging_options'
)


def get_options() -> StagingOptions:
    """Return the options active in the current context."""
    return current_options.get(_default_options)


def set_default_options(options: StagingOptions) -> None:
    """Replace the process-wide default options.

    Contexts opened with staging_options() still take precedence.
    """
    global _default_options
    if not isinstance(options, StagingOptions):
        raise TypeError(f"Expected StagingOptions, got {type(options).__name__}")
    _default_options = options


def get_default_options() -> StagingOptions:
    return _default_options


@contextmanager
def staging_options(**overrides):
    """Scope option overrides to a block.

    Args:
        **overrides: StagingOptions fields to override, e.g. hole=0

    Raises:
        TypeError: If an override names an unknown option.
    """
    merged = dataclasses.replace(get_options(), **overrides)
    token = current_options.set(merged)
    try:
        yield merged
    finally:
        current_options.reset(token)
