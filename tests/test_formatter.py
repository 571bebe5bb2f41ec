"""
Tests for context pack rendering
"""
import pytest

from local_gate.services.context.formatter import (
    GUARD_SENTENCE,
    MODE_MENTION,
    MODE_PREVIEW,
    MODE_SUMMARY,
    default_pack_label,
    folder_alias,
    render_header,
    render_mentions,
    render_missing,
    render_pack,
    select_mode,
    wants_preview,
)
from local_gate.services.context.models import ContextPackItem
from local_gate.services.context.redactor import find_paths


class TestLabels:
    """Test aliases and default labels"""

    @pytest.mark.unit
    def test_folder_alias(self):
        assert folder_alias("Notes/Projects") == "Projects"
        assert folder_alias("Notes/Projects/") == "Projects"
        assert folder_alias("") == "Vault"

    @pytest.mark.unit
    def test_default_label_from_folders(self):
        assert default_pack_label(["Notes/Projects", "Notes/Journal"], []) == "Projects, Journal"
        assert default_pack_label(["a", "b", "c", "d", "e"], []) == "a, b, c (+2)"

    @pytest.mark.unit
    def test_default_label_from_files(self):
        assert default_pack_label([], ["Notes/a.md", "Notes/b.md"]) == "a.md (+1)"
        assert default_pack_label([], []) == "Selection"


class TestModeSelection:
    """Test summary/preview/mention mode choice"""

    @pytest.mark.unit
    def test_keyword_triggers_preview(self, settings):
        assert wants_preview("please summarize for me", settings)
        assert wants_preview("이 문서 요약 부탁", settings)
        assert not wants_preview("what is next", settings)

    @pytest.mark.unit
    def test_auto_preview_disabled(self, settings):
        settings.context_pack_auto_preview = False
        assert not wants_preview("summarize", settings)

    @pytest.mark.unit
    def test_include_previews_always(self, settings):
        settings.context_pack_include_previews = True
        assert wants_preview("", settings)

    @pytest.mark.unit
    def test_select_mode(self, settings):
        assert select_mode("summarize", settings) == MODE_PREVIEW
        assert select_mode("hello", settings) == MODE_SUMMARY
        settings.context_pack_inline = False
        assert select_mode("summarize", settings) == MODE_MENTION


class TestRendering:
    """Test rendered block shapes"""

    @pytest.mark.unit
    def test_header_counts(self, sample_pack, sample_items):
        assert render_header(sample_pack, 2) == "[Context Pack: Projects | 2 of 3 files]"

    @pytest.mark.unit
    def test_header_label_is_redacted(self, sample_pack):
        pack = sample_pack.model_copy(update={"label": "/Users/alice/Projects [draft]"})
        header = render_header(pack, 1)

        assert "/Users" not in header
        assert header == "[Context Pack: (path) (draft) | 1 of 3 files]"

    @pytest.mark.unit
    def test_summary_block(self, sample_pack, sample_items, settings):
        block = render_pack(sample_pack, sample_items[:2], MODE_SUMMARY, settings)

        assert block == "[Context Pack: Projects | 2 of 3 files]\n- Folders: Projects"
        assert GUARD_SENTENCE not in block

    @pytest.mark.unit
    def test_preview_block(self, sample_pack, sample_items, settings):
        block = render_pack(sample_pack, sample_items, MODE_PREVIEW, settings)
        lines = block.split("\n")

        assert lines[0] == "[Context Pack: Projects | 3 of 3 files]"
        assert lines[1] == "- alpha: Quarterly revenue plan for the alpha launch."
        assert len(lines) == 4
        assert find_paths(block) == []

    @pytest.mark.unit
    def test_preview_bullets_are_sanitized_and_capped(self, sample_pack, settings):
        item = ContextPackItem(
            path="Notes/long.md",
            mention_path="Notes/long",
            preview="See /Users/alice/secret.md " + "filler " * 100,
            folder_path="Notes",
        )
        block = render_pack(sample_pack, [item], MODE_PREVIEW, settings)
        bullet = block.split("\n")[1]

        assert "/Users" not in bullet
        assert "[path]" in bullet
        assert len(bullet) <= settings.context_pack_inline_item_chars
        assert bullet.endswith("...")

    @pytest.mark.unit
    def test_mentions(self, sample_items):
        assert render_mentions(sample_items[:2]) == (
            "@alpha [[Notes/Projects/alpha]] @beta [[Notes/Projects/beta]]"
        )

    @pytest.mark.unit
    def test_missing_marker(self):
        assert render_missing("cp-missing1") == "[Context Pack missing: cp-missing1]"
