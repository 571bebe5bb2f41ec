"""
Context pack API routes
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger
from pydantic import BaseModel, Field

from local_gate.config import settings
from local_gate.core.exceptions import EmptySelectionError, PackNotFoundError
from local_gate.engine import ContextPackEngine
from local_gate.host.vault import VaultHost
from local_gate.services.context.models import ContextPack
from local_gate.services.context.ranker import (
    build_folder_weight_map,
    coerce_top_k,
    rank_context_pack_items,
)
from local_gate.services.context.resolver import build_reference_token, pack_items

router = APIRouter(prefix="/context-packs", tags=["Context Packs"])

_engine: Optional[ContextPackEngine] = None


def get_engine() -> ContextPackEngine:
    """Process-wide engine over the configured vault"""
    global _engine
    if _engine is None:
        logger.info(f"Serving context packs from vault: {settings.vault_path}")
        _engine = ContextPackEngine(VaultHost(Path(settings.vault_path), settings), settings)
    return _engine


# Request / response models

class CreatePackRequest(BaseModel):
    folders: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)
    label: Optional[str] = None
    top_k: Optional[int] = None


class PackSummary(BaseModel):
    """History entry without item previews"""
    id: str
    label: str
    token: str
    created_at: datetime
    last_used_at: Optional[datetime] = None
    source_folders: List[str]
    total_files: int
    item_count: int
    top_k: int


class CreatePackResponse(BaseModel):
    pack: PackSummary
    total_files: int
    item_count: int
    preview_failures: int


class CandidatesResponse(BaseModel):
    folders: List[str]
    files: List[str]


class RankedItem(BaseModel):
    rank: int
    path: str
    mention_path: str
    folder_path: str


class RankResponse(BaseModel):
    pack_id: str
    query: str
    top_k: int
    items: List[RankedItem]


class TextRequest(BaseModel):
    text: str = ""
    surface_id: Optional[str] = None


class ExpandResponse(BaseModel):
    text: str
    changed: bool
    expanded_ids: List[str]
    missing_ids: List[str]
    inline_context: bool


class ResetResponse(BaseModel):
    text: str
    restored: bool
    stripped: bool


class GuardRequest(BaseModel):
    text: str = ""
    payload: Optional[Any] = None
    surface_id: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    capabilities: Optional[List[str]] = None


class GuardResponse(BaseModel):
    text: str
    payload: Optional[Any] = None
    target: Dict[str, Any]
    inline_context: bool
    expanded_ids: List[str]
    missing_ids: List[str]
    patched_nodes: int


def summarize_pack(pack: ContextPack) -> PackSummary:
    return PackSummary(
        id=pack.id,
        label=pack.label,
        token=build_reference_token(pack.id),
        created_at=pack.created_at,
        last_used_at=pack.last_used_at,
        source_folders=pack.source_folders,
        total_files=pack.total_files,
        item_count=len(pack.items),
        top_k=pack.top_k,
    )


def require_pack(engine: ContextPackEngine, pack_id: str) -> ContextPack:
    pack = engine.find_pack(pack_id)
    if pack is None:
        raise PackNotFoundError(pack_id)
    return pack


# Pack history

@router.post("", response_model=CreatePackResponse, status_code=201)
async def create_context_pack(
    request: CreatePackRequest,
    engine: ContextPackEngine = Depends(get_engine),
):
    """Build a pack from selected folders and/or files"""
    result = await engine.create_pack(
        folders=request.folders,
        files=request.files,
        label=request.label,
        top_k=request.top_k,
    )
    if not result.created:
        raise EmptySelectionError(request.folders, request.files)

    return CreatePackResponse(
        pack=summarize_pack(result.pack),
        total_files=result.total_files,
        item_count=result.item_count,
        preview_failures=result.preview_failures,
    )


@router.get("", response_model=List[PackSummary])
async def list_context_packs(engine: ContextPackEngine = Depends(get_engine)):
    """Pack history, most recent first"""
    return [summarize_pack(pack) for pack in engine.list_packs()]


@router.get("/candidates", response_model=CandidatesResponse)
async def list_selection_candidates(engine: ContextPackEngine = Depends(get_engine)):
    """Folders and files that can be picked for a new pack"""
    return CandidatesResponse(**await engine.list_candidates())


@router.get("/{pack_id}", response_model=ContextPack)
async def get_context_pack(pack_id: str, engine: ContextPackEngine = Depends(get_engine)):
    return require_pack(engine, pack_id)


@router.get("/{pack_id}/rank", response_model=RankResponse)
async def rank_context_pack(
    pack_id: str,
    query: str = Query("", description="Free text the items are ranked against"),
    top_k: Optional[int] = Query(None, description="Maximum items returned; defaults to the pack's top_k"),
    engine: ContextPackEngine = Depends(get_engine),
):
    """Preview which items a reference would expand to for a given message"""
    pack = require_pack(engine, pack_id)
    limit = coerce_top_k(top_k, pack.top_k)
    ranked = rank_context_pack_items(
        pack_items(pack),
        query=query,
        top_k=limit,
        folder_weights=build_folder_weight_map(pack.source_folders),
    )
    return RankResponse(
        pack_id=pack.id,
        query=query,
        top_k=limit,
        items=[
            RankedItem(
                rank=index + 1,
                path=item.path,
                mention_path=item.mention_path,
                folder_path=item.folder_path,
            )
            for index, item in enumerate(ranked)
        ],
    )


# Text operations

@router.post("/expand", response_model=ExpandResponse)
async def expand_references(request: TextRequest, engine: ContextPackEngine = Depends(get_engine)):
    """Replace every `@context-pack(<id>)` token in the text"""
    result = engine.expand_text(request.text, request.surface_id)
    return ExpandResponse(**result.model_dump())


@router.post("/reset", response_model=ResetResponse)
async def reset_expansion(request: TextRequest, engine: ContextPackEngine = Depends(get_engine)):
    """Undo the last expansion on the surface, or strip expansion artifacts"""
    result = engine.reset_text(request.text, request.surface_id)
    return ResetResponse(**result.model_dump())


@router.post("/guard", response_model=GuardResponse)
async def guard_request(request: GuardRequest, engine: ContextPackEngine = Depends(get_engine)):
    """Run the send guard over a message and its outgoing payload"""
    selection = {"provider": request.provider or "", "model": request.model or ""}
    report = engine.guard.process(
        request.text,
        request.payload,
        request.surface_id,
        selection=selection,
        capabilities=request.capabilities,
    )
    return GuardResponse(
        text=report.text,
        payload=report.payload,
        target=report.target.as_dict(),
        inline_context=report.inline_context,
        expanded_ids=report.expansion.expanded_ids,
        missing_ids=report.expansion.missing_ids,
        patched_nodes=report.patched_nodes,
    )
