"""
Pytest configuration and fixtures for local-gate tests
"""
import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

# Ensure the `src/` directory is available for imports.
# pytest executes from the repository root, but our package lives in `src/`.
ROOT_DIR = Path(__file__).parent.parent
SRC_DIR = ROOT_DIR / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from local_gate.config import settings as global_settings
from local_gate.engine import ContextPackEngine
from local_gate.host.vault import VaultHost
from local_gate.services.context.models import ContextPack, ContextPackItem


@pytest.fixture
def settings():
    """Isolated settings copy; tests may tweak fields freely"""
    return global_settings.model_copy(
        update={
            "context_pack_inline": True,
            "context_pack_include_previews": False,
            "context_pack_auto_preview": True,
            "guard_suppress_tools": True,
            "guard_suppress_thinking": True,
            "model_capabilities": {},
            "default_provider": "ollama",
            "default_model": "gpt-oss:20b",
        },
        deep=True,
    )


@pytest.fixture
def vault_path(tmp_path):
    """Create a temporary notes vault with sample files"""
    vault = tmp_path / "vault"
    (vault / "Notes" / "Projects").mkdir(parents=True)
    (vault / "Notes" / "Journal").mkdir(parents=True)
    (vault / ".obsidian").mkdir()

    (vault / "Notes" / "Projects" / "alpha.md").write_text(
        "---\ntags: [plan]\n---\n# Alpha\nQuarterly revenue plan for the alpha launch.\n",
        encoding="utf-8",
    )
    (vault / "Notes" / "Projects" / "beta.md").write_text(
        "# Beta\nHiring roadmap and team budget.\n",
        encoding="utf-8",
    )
    (vault / "Notes" / "Projects" / "gamma.md").write_text(
        "Gamma retrospective: revenue dipped, see [[alpha]].\n",
        encoding="utf-8",
    )
    (vault / "Notes" / "Journal" / "today.md").write_text(
        "Met with the design team at 10:30 about the roadmap.\n",
        encoding="utf-8",
    )
    (vault / "Notes" / "Journal" / "image.png").write_bytes(b"\x89PNG")
    (vault / ".obsidian" / "workspace.md").write_text("hidden", encoding="utf-8")
    return vault


@pytest.fixture
def vault_host(vault_path, settings):
    """Filesystem host over the sample vault"""
    return VaultHost(vault_path, settings)


@pytest.fixture
def engine(vault_host, settings):
    """Engine wired to the sample vault"""
    return ContextPackEngine(vault_host, settings)


@pytest.fixture
def sample_items():
    """Pack items in discovery order"""
    return [
        ContextPackItem(
            path="Notes/Projects/alpha.md",
            mention_path="Notes/Projects/alpha",
            preview="Quarterly revenue plan for the alpha launch.",
            folder_path="Notes/Projects",
        ),
        ContextPackItem(
            path="Notes/Projects/beta.md",
            mention_path="Notes/Projects/beta",
            preview="Hiring roadmap and team budget.",
            folder_path="Notes/Projects",
        ),
        ContextPackItem(
            path="Notes/Projects/gamma.md",
            mention_path="Notes/Projects/gamma",
            preview="Gamma retrospective: revenue dipped.",
            folder_path="Notes/Projects",
        ),
    ]


@pytest.fixture
def sample_pack(sample_items):
    """Pack over the sample items"""
    return ContextPack(
        id="cp-abc12-xyz9",
        label="Projects",
        source_folders=["Notes/Projects"],
        items=sample_items,
        file_paths=[item.path for item in sample_items],
        total_files=3,
        top_k=8,
    )


# ============================================================================
# Host doubles
# ============================================================================

@pytest.fixture
def mock_host():
    """Host exposing every capability as async mocks"""
    host = Mock(spec=[
        "read_item_content",
        "list_candidate_folders",
        "list_candidate_files",
        "get_input_text",
        "set_input_text",
        "get_model_selection",
        "set_model_selection",
        "get_model_capabilities",
        "get_active_surface",
        "intercept_send",
    ])
    host.read_item_content = AsyncMock(return_value="Body text")
    host.list_candidate_folders = AsyncMock(return_value=["Notes"])
    host.list_candidate_files = AsyncMock(return_value=["Notes/a.md", "Notes/b.md"])
    host.get_input_text = AsyncMock(return_value="")
    host.set_input_text = AsyncMock()
    host.get_model_selection = AsyncMock(return_value={"provider": "ollama", "model": "llama3"})
    host.set_model_selection = AsyncMock()
    host.get_model_capabilities = AsyncMock(return_value=[])
    host.get_active_surface = AsyncMock(return_value="surface-1")
    host.intercept_send = AsyncMock()
    return host


# Test configuration
def pytest_configure(config):
    """Configure pytest"""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (filesystem vault, HTTP app)"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
