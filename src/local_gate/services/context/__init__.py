"""Context pack creation, ranking and reference expansion."""

from local_gate.services.context.models import (
    ContextPack,
    ContextPackItem,
    ExpansionResult,
    PackCreationResult,
    PackSelection,
    ResetResult,
)
from local_gate.services.context.pack_store import PackStore
from local_gate.services.context.ranker import rank_context_pack_items
from local_gate.services.context.resolver import (
    ReferenceResolver,
    SnapshotStore,
    build_reference_token,
)

__all__ = [
    "ContextPack",
    "ContextPackItem",
    "ExpansionResult",
    "PackCreationResult",
    "PackSelection",
    "ResetResult",
    "PackStore",
    "rank_context_pack_items",
    "ReferenceResolver",
    "SnapshotStore",
    "build_reference_token",
]
