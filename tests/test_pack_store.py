"""
Tests for context pack creation and history
"""
import asyncio

import pytest

from local_gate.host.adapter import HostAdapter
from local_gate.services.context.models import ContextPack, PackSelection
from local_gate.services.context.pack_store import (
    PackStore,
    PreviewCache,
    folder_path_for,
    generate_pack_id,
    mention_path_for,
    normalize_path,
)
from local_gate.services.context.resolver import REFERENCE_TOKEN_RE, build_reference_token


class TestPathHelpers:
    """Test path normalization helpers"""

    @pytest.mark.unit
    def test_normalize_path(self):
        assert normalize_path(" Notes\\Projects/ ") == "Notes/Projects"
        assert normalize_path(None) == ""

    @pytest.mark.unit
    def test_mention_path_drops_markdown_extension(self):
        assert mention_path_for("Notes/alpha.md") == "Notes/alpha"
        assert mention_path_for("Notes/alpha.MARKDOWN") == "Notes/alpha"
        assert mention_path_for("Notes/todo.txt") == "Notes/todo.txt"

    @pytest.mark.unit
    def test_folder_path_prefers_longest_selected_folder(self):
        folders = ["Notes", "Notes/Projects"]
        assert folder_path_for("Notes/Projects/a.md", folders) == "Notes/Projects"
        assert folder_path_for("Notes/b.md", folders) == "Notes"
        assert folder_path_for("Other/c.md", folders) == "Other"
        assert folder_path_for("root.md", []) == ""

    @pytest.mark.unit
    def test_generated_id_is_a_valid_token_id(self):
        pack_id = generate_pack_id()
        assert pack_id.startswith("cp-")
        assert REFERENCE_TOKEN_RE.fullmatch(build_reference_token(pack_id))


class TestPreviewCache:
    """Test bounded preview cache"""

    @pytest.mark.unit
    def test_evicts_oldest(self):
        cache = PreviewCache(capacity=2)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.get("a")
        cache.set("c", "3")

        assert cache.get("b") is None
        assert cache.get("a") == "1"
        assert len(cache) == 2


class TestPackCreation:
    """Test building packs from selections"""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_from_folder(self, vault_host, settings):
        store = PackStore(HostAdapter(vault_host), settings)

        result = await store.create(PackSelection(folders=["Notes/Projects"], top_k=2))

        assert result.created
        assert result.total_files == 3
        assert result.item_count == 3
        assert result.preview_failures == 0

        pack = result.pack
        assert pack.label == "Projects"
        assert pack.top_k == 2
        assert pack.source_folders == ["Notes/Projects"]
        assert pack.file_paths == [
            "Notes/Projects/alpha.md",
            "Notes/Projects/beta.md",
            "Notes/Projects/gamma.md",
        ]
        alpha = pack.items[0]
        assert alpha.mention_path == "Notes/Projects/alpha"
        assert alpha.folder_path == "Notes/Projects"
        assert alpha.preview == "Alpha Quarterly revenue plan for the alpha launch."
        assert store.find(pack.id) is pack

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_merges_folders_and_files(self, vault_host, settings):
        store = PackStore(HostAdapter(vault_host), settings)

        result = await store.create(PackSelection(
            folders=["Notes/Journal"],
            files=["Notes/Projects/beta.md", "Notes/Journal/today.md"],
            label="  Mixed  ",
        ))

        assert result.pack.label == "Mixed"
        assert result.pack.file_paths == ["Notes/Journal/today.md", "Notes/Projects/beta.md"]
        assert result.pack.top_k == settings.context_pack_default_top_k

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_selection_creates_nothing(self, mock_host, settings):
        mock_host.list_candidate_files.return_value = []
        store = PackStore(HostAdapter(mock_host), settings)

        result = await store.create(PackSelection(folders=["Nowhere"]))

        assert not result.created
        assert result.total_files == 0
        assert len(store) == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_preview_failure_leaves_empty_preview(self, mock_host, settings):
        async def read(path):
            if path == "Notes/b.md":
                raise OSError("locked")
            return "Readable body"

        mock_host.read_item_content.side_effect = read
        store = PackStore(HostAdapter(mock_host), settings)

        result = await store.create(PackSelection(folders=["Notes"]))

        assert result.created
        assert result.item_count == 2
        assert result.preview_failures == 1
        previews = {item.path: item.preview for item in result.pack.items}
        assert previews == {"Notes/a.md": "Readable body", "Notes/b.md": ""}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_slow_preview_read_times_out(self, mock_host, settings):
        async def slow_read(path):
            await asyncio.sleep(1)
            return "late"

        settings.preview_read_timeout = 0.01
        mock_host.read_item_content.side_effect = slow_read
        mock_host.list_candidate_files.return_value = ["Notes/a.md"]
        store = PackStore(HostAdapter(mock_host), settings)

        result = await store.create(PackSelection(folders=["Notes"]))

        assert result.preview_failures == 1
        assert result.pack.items[0].preview == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_items_capped_but_total_counted(self, mock_host, settings):
        settings.context_pack_max_items = 5
        mock_host.list_candidate_files.return_value = [f"Notes/n{i:02d}.md" for i in range(12)]
        store = PackStore(HostAdapter(mock_host), settings)

        result = await store.create(PackSelection(folders=["Notes"]))

        assert result.total_files == 12
        assert result.item_count == 5
        assert result.pack.total_files == 12
        assert len(result.pack.file_paths) == 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_previews_are_cached(self, mock_host, settings):
        store = PackStore(HostAdapter(mock_host), settings)

        await store.create(PackSelection(files=["Notes/a.md"]))
        await store.create(PackSelection(files=["Notes/a.md"]))

        assert mock_host.read_item_content.await_count == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pack_ids_are_unique(self, mock_host, settings):
        store = PackStore(HostAdapter(mock_host), settings)

        ids = set()
        for _ in range(10):
            result = await store.create(PackSelection(files=["Notes/a.md"]))
            ids.add(result.pack.id)

        assert len(ids) == 10


class TestPackHistory:
    """Test the bounded, most-recent-first history"""

    def make_pack(self, index):
        return ContextPack(id=f"cp-test{index:03d}", label=f"Pack {index}")

    @pytest.mark.unit
    def test_most_recent_first_and_eviction(self, mock_host, settings):
        store = PackStore(HostAdapter(mock_host), settings)
        for index in range(settings.context_pack_history_limit + 1):
            store.push(self.make_pack(index))

        packs = store.list_packs()
        assert len(packs) == 40
        assert packs[0].id == "cp-test040"
        assert store.find("cp-test000") is None
        assert store.find("cp-test001") is not None

    @pytest.mark.unit
    def test_find_is_case_insensitive(self, mock_host, settings):
        store = PackStore(HostAdapter(mock_host), settings)
        store.push(self.make_pack(7))

        assert store.find("CP-TEST007").id == "cp-test007"
        assert store.find("") is None
        assert store.find("cp-other") is None

    @pytest.mark.unit
    def test_push_replaces_same_id(self, mock_host, settings):
        store = PackStore(HostAdapter(mock_host), settings)
        store.push(self.make_pack(1))
        store.push(self.make_pack(2))
        store.push(ContextPack(id="cp-test001", label="Renamed"))

        assert [pack.id for pack in store.list_packs()] == ["cp-test001", "cp-test002"]
        assert store.find("cp-test001").label == "Renamed"

    @pytest.mark.unit
    def test_touch_sets_last_used(self, mock_host, settings):
        store = PackStore(HostAdapter(mock_host), settings)
        store.push(self.make_pack(1))

        assert store.find("cp-test001").last_used_at is None
        store.touch("cp-test001")
        assert store.find("cp-test001").last_used_at is not None
        assert store.touch("cp-nothing") is None

    @pytest.mark.unit
    def test_export_and_load(self, mock_host, settings, sample_pack):
        store = PackStore(HostAdapter(mock_host), settings)
        store.push(sample_pack)
        exported = store.export()

        restored = PackStore(HostAdapter(mock_host), settings)
        count = restored.load(exported + [{"label": "no id"}])

        assert count == 1
        pack = restored.find(sample_pack.id)
        assert pack.items == sample_pack.items
        assert pack.created_at == sample_pack.created_at
