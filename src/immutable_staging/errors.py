"""
Exceptions raised while staging or merging an update.

All of them are raised synchronously at the point of failure and abort the
enclosing update; no merge runs after any of them.
"""

from typing import Any


class StagingError(Exception):
    """Base class for every error raised by immutable_staging."""


class WriteToMethodError(StagingError):
    """A write targeted a name that resolves to a method on the node."""

    def __init__(self, key: Any):
        self.key = key
        super().__init__(
            f"'{key}' is a method; you can't assign to methods while "
            f"updating an object through a staging view."
        )


class ProtectedNameError(StagingError):
    """A write targeted one of the reserved marker names."""

    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"'{key}' is a protected property name; you shouldn't assign to it.")


class ArrayInvariantError(StagingError):
    """A sequence received a write that is neither an index nor its length."""

    def __init__(self, key: Any, value: Any = None, reason: str = ""):
        self.key = key
        self.value = value
        message = f"A property ({key!r}) that's not an integer index or 'length' was set on a sequence"
        if reason:
            message = f"Invalid write of {value!r} to {key!r} on a sequence: {reason}"
        super().__init__(message)


class CycleDetectedError(StagingError):
    """The merge re-entered a node that is still being rebuilt."""

    def __init__(self, node: Any):
        self.node_type = type(node).__name__
        super().__init__(
            f"Reference cycle detected while rebuilding a {self.node_type}; "
            f"only trees and DAGs can be updated."
        )
