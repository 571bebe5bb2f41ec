"""
Pydantic models for context packs and engine results
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContextPackItem(BaseModel):
    """A single indexed document inside a pack"""
    model_config = ConfigDict(frozen=True)

    path: str
    mention_path: str
    preview: str = ""
    folder_path: str = ""


class ContextPack(BaseModel):
    """Named snapshot of a note selection"""
    id: str
    label: str
    created_at: datetime = Field(default_factory=utcnow)
    source_folders: List[str] = Field(default_factory=list)
    items: List[ContextPackItem] = Field(default_factory=list)
    file_paths: List[str] = Field(default_factory=list)
    total_files: int = 0
    top_k: int = 8
    last_used_at: Optional[datetime] = None


class PackSelection(BaseModel):
    """Folders and/or files picked by the user"""
    folders: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)
    label: Optional[str] = None
    top_k: Optional[int] = None


class PackCreationResult(BaseModel):
    pack: Optional[ContextPack] = None
    total_files: int = 0
    item_count: int = 0
    preview_failures: int = 0

    @property
    def created(self) -> bool:
        return self.pack is not None


class ExpansionResult(BaseModel):
    text: str
    changed: bool = False
    expanded_ids: List[str] = Field(default_factory=list)
    missing_ids: List[str] = Field(default_factory=list)
    inline_context: bool = False


class ResetResult(BaseModel):
    text: str
    restored: bool = False
    stripped: bool = False


@dataclass
class InputSnapshot:
    """Before/after pair for one-level undo of an expansion"""

    before: str
    after: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class RuntimeTarget:
    provider: str
    model: str
    wire_api: str
    vision: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "wire_api": self.wire_api,
            "vision": self.vision,
        }


@dataclass
class GuardReport:
    """Outcome of one send guard pass"""

    text: str
    payload: Any
    target: RuntimeTarget
    inline_context: bool
    expansion: ExpansionResult
    patched_nodes: int = 0
