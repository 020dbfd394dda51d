"""File mutation primitives used by the pipeline steps.

Quick usage::

    from app_builder.mutations import FileMutationEngine

    engine = FileMutationEngine("/tmp/blog")
    engine.inject_after("config/application.rb", "config.assets.enabled = true",
                        "\\n    config.assets.initialize_on_precompile = false")
"""

from app_builder.mutations.anchors import Anchor, AnchorResolver, Span, block_anchor
from app_builder.mutations.engine import (
    AnchorNotFoundError,
    FileMutation,
    FileMutationEngine,
    InvalidPathError,
    MutationError,
    MutationKind,
    NotFoundError,
    PathConflictError,
)

__all__ = [
    "Anchor",
    "AnchorNotFoundError",
    "AnchorResolver",
    "FileMutation",
    "FileMutationEngine",
    "InvalidPathError",
    "MutationError",
    "MutationKind",
    "NotFoundError",
    "PathConflictError",
    "Span",
    "block_anchor",
]
