"""
Configuration settings for Local Gate.

This module defines all application settings using Pydantic Settings.
Settings can be configured via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional, Dict, List


DEFAULT_PREVIEW_KEYWORDS = [
    "summarize",
    "summarise",
    "summary",
    "preview",
    "overview",
    "explain",
    "analyze",
    "analyse",
    "review",
    "요약",
    "정리",
    "분석",
]

DEFAULT_VISION_PATTERNS = [
    "vision",
    "-vl",
    "vl:",
    "llava",
    "bakllava",
    "moondream",
    "minicpm-v",
    "gemma3",
    "llama3.2-vision",
]


class Settings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    # Application Settings
    app_name: str = "Local Gate Context Pack Service"
    app_version: str = "0.3.0"
    debug: bool = Field(default=False, alias="DEBUG")

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Host for the REST API", alias="HOST")
    port: int = Field(default=8765, description="Port for the REST API", alias="PORT")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["app://obsidian.md", "http://localhost", "http://127.0.0.1"],
        description="Origins allowed to call the API: the notes app and local tools",
        alias="CORS_ORIGINS",
    )
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["GET", "POST"], description="HTTP methods allowed cross-origin")
    gzip_minimum_size: int = Field(default=1000, description="Responses smaller than this are sent uncompressed")

    # Vault (filesystem host) Settings
    vault_path: str = Field(default=".", description="Notes folder served by the bundled host", alias="VAULT_PATH")
    vault_extensions: List[str] = Field(
        default=[".md", ".txt"],
        description="File extensions treated as context pack candidates",
        alias="VAULT_EXTENSIONS",
    )
    max_preview_bytes: int = Field(default=64 * 1024, description="Maximum bytes read per item preview")

    # Context Pack Settings
    context_pack_max_items: int = Field(default=200, description="Maximum items stored per pack", alias="CONTEXT_PACK_MAX_ITEMS")
    context_pack_history_limit: int = Field(default=40, description="Packs kept in history", alias="CONTEXT_PACK_HISTORY_LIMIT")
    context_pack_default_top_k: int = Field(default=8, description="Default expansion size", alias="CONTEXT_PACK_TOP_K")
    context_pack_preview_chars: int = Field(default=600, description="Preview excerpt length stored per item")
    context_pack_inline_item_chars: int = Field(default=300, description="Maximum characters per inline bullet")
    context_pack_inline: bool = Field(default=True, description="Inject pack content inline instead of mentions", alias="CONTEXT_PACK_INLINE")
    context_pack_include_previews: bool = Field(default=False, description="Always render item previews", alias="CONTEXT_PACK_INCLUDE_PREVIEWS")
    context_pack_auto_preview: bool = Field(default=True, description="Render previews when the message asks for them", alias="CONTEXT_PACK_AUTO_PREVIEW")
    context_pack_preview_keywords: List[str] = Field(default_factory=lambda: list(DEFAULT_PREVIEW_KEYWORDS))
    preview_cache_size: int = Field(default=2000, description="Cached item previews")
    preview_read_timeout: float = Field(default=3.0, description="Timeout in seconds for a single preview read")
    snapshot_capacity: int = Field(default=64, description="Undo snapshots kept for non-weakref surfaces")

    # Send Guard Settings
    guard_suppress_tools: bool = Field(default=True, description="Strip tool exposure when inline context is present", alias="GUARD_SUPPRESS_TOOLS")
    guard_suppress_thinking: bool = Field(default=True, description="Force thinking/reasoning flags off", alias="GUARD_SUPPRESS_THINKING")
    guard_max_depth: int = Field(default=5, description="Payload walk depth limit")

    # Runtime target Settings
    default_provider: str = Field(default="ollama", description="Provider used when the surface has none", alias="LOCAL_PROVIDER")
    default_model: str = Field(default="gpt-oss:20b", description="Model used when the surface has none", alias="LOCAL_MODEL")
    wire_api: str = Field(default="chat", description="Wire protocol for text models", alias="WIRE_API")
    vision_wire_api: str = Field(default="responses", description="Wire protocol for vision models", alias="VISION_WIRE_API")
    prefer_vision_wire_api: bool = Field(default=True, description="Switch wire protocol for vision-capable models")
    vision_model_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_VISION_PATTERNS))
    model_capabilities: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Capabilities of discovered models, keyed by model name",
    )

    # logging
    log_file: Optional[str] = Field(default=None, description="Log file path", alias="LOG_FILE")
    log_level: str = Field(default="INFO", description="Log level", alias="LOG_LEVEL")


# Global settings instance
settings = Settings()
