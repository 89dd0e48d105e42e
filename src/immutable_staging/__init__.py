"""
Update immutable object graphs by mutating a staging view.

Hand apply_update() a root and a function that mutates a view of it. You get
back a new root in which every node you wrote to, and every ancestor of such
a node, is a fresh object. Every other node is the original object, so
`old is new` is a complete change check for any subtree.

Key Features:
- Structural sharing: untouched subtrees are reused by reference
- DAG aware: a node shared by several parents stays shared after the update
- Read-your-writes: reads through the view see pending writes immediately
- Sequence semantics: growing, shrinking and list methods through the view
- The original graph is never mutated, even when the mutator fails

Quick Start:
    >>> from immutable_staging import apply_update
    >>> state = {'one': {'three': 10}, 'two': {'six': 30}}
    >>> def update(view):
    ...     view['one']['three'] = 20
    >>> new_state = apply_update(state, update)
    >>> new_state['one']['three'], state['one']['three']
    (20, 10)
    >>> new_state['two'] is state['two']
    True

Architecture:
    nodes          Node shapes (scalar / sequence / mapping / callable)
    write_cache    Identity-keyed pending writes for one update
    array_invariant  Sequence length bookkeeping
    staging_view   Views that redirect writes into the cache
    merge          Rebuilds the graph from the original plus the cache
    update         apply_update(), staged_update(), merge_changes()
    config         Marker names and runtime options
"""

# Entry points
from immutable_staging.update import (
    apply_update,
    staged_update,
    merge_changes,
    StagedUpdate,
)

# Views
from immutable_staging.staging_view import (
    StagingView,
    MappingView,
    SequenceView,
    RecordView,
    stage,
    unwrap,
    is_staging_view,
)

# Engine pieces
from immutable_staging.write_cache import WriteCache, Patch, DELETED
from immutable_staging.merge import MergeEngine, apply_writes
from immutable_staging.nodes import NodeKind, node_kind, slot_kind

# Configuration
from immutable_staging.config import (
    StagingOptions,
    staging_options,
    get_options,
    set_default_options,
    UNWRAP_MARKER,
    CACHE_MARKER,
    SEQUENCE_MARKER,
    PROTECTED_NAMES,
    LENGTH,
)

# Errors
from immutable_staging.errors import (
    StagingError,
    WriteToMethodError,
    ProtectedNameError,
    ArrayInvariantError,
    CycleDetectedError,
)

__all__ = [
    # Entry points
    'apply_update',
    'staged_update',
    'merge_changes',
    'StagedUpdate',
    # Views
    'StagingView',
    'MappingView',
    'SequenceView',
    'RecordView',
    'stage',
    'unwrap',
    'is_staging_view',
    # Engine pieces
    'WriteCache',
    'Patch',
    'DELETED',
    'MergeEngine',
    'apply_writes',
    'NodeKind',
    'node_kind',
    'slot_kind',
    # Configuration
    'StagingOptions',
    'staging_options',
    'get_options',
    'set_default_options',
    'UNWRAP_MARKER',
    'CACHE_MARKER',
    'SEQUENCE_MARKER',
    'PROTECTED_NAMES',
    'LENGTH',
    # Errors
    'StagingError',
    'WriteToMethodError',
    'ProtectedNameError',
    'ArrayInvariantError',
    'CycleDetectedError',
]

__version__ = '1.0.0'
__description__ = 'Update immutable object graphs by mutating a staging view'
