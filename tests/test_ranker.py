"""
Tests for context pack ranking
Token overlap, folder priority, positional fallback and the top-k bound
"""
import pytest

from local_gate.services.context.models import ContextPackItem
from local_gate.services.context.ranker import (
    build_folder_weight_map,
    coerce_top_k,
    rank_context_pack_items,
    score_item,
)
from local_gate.services.context.tokenizer import overlap_score, token_set, tokenize


def make_item(path, preview="", folder="Notes"):
    mention = path[:-3] if path.endswith(".md") else path
    return ContextPackItem(path=path, mention_path=mention, preview=preview, folder_path=folder)


class TestTokenizer:
    """Test tokenization helpers"""

    @pytest.mark.unit
    def test_tokenize_lowercases_and_drops_short_tokens(self):
        assert tokenize("Quarterly Revenue, a Q3 plan!") == ["quarterly", "revenue", "q3", "plan"]

    @pytest.mark.unit
    def test_tokenize_keeps_path_punctuation_and_hangul(self):
        tokens = tokenize("Notes/Projects/alpha.md 요약 해줘")
        assert "notes/projects/alpha.md" in tokens
        assert "요약" in tokens

    @pytest.mark.unit
    def test_tokenize_non_string(self):
        assert tokenize(None) == []
        assert tokenize(42) == []

    @pytest.mark.unit
    def test_overlap_score_counts_query_hits(self):
        target = token_set("revenue plan for launch")
        assert overlap_score(["revenue", "plan", "hiring"], target, 2.0) == 4.0
        assert overlap_score([], target) == 0
        assert overlap_score(["revenue"], set()) == 0


class TestCoerceTopK:
    """Test top-k normalization"""

    @pytest.mark.unit
    @pytest.mark.parametrize("value,expected", [
        (3, 3),
        ("5", 5),
        (2.9, 2),
        (0, 8),
        (-4, 8),
        (None, 8),
        ("many", 8),
        (True, 8),
        (float("inf"), 8),
    ])
    def test_coerce_top_k(self, value, expected):
        assert coerce_top_k(value) == expected

    @pytest.mark.unit
    def test_coerce_top_k_custom_default(self):
        assert coerce_top_k(None, 4) == 4


class TestFolderWeights:
    """Test folder priority map"""

    @pytest.mark.unit
    def test_weights_decay_with_floor(self):
        folders = [f"F{i}" for i in range(12)]
        weights = build_folder_weight_map(folders)

        assert weights["F0"] == 1
        assert weights["F1"] == pytest.approx(0.92)
        assert weights["F11"] == 0.25

    @pytest.mark.unit
    def test_weights_skip_blank_folders_first_duplicate_wins(self):
        weights = build_folder_weight_map(["A", "", "A", "B"])
        assert weights == {"A": 1, "B": pytest.approx(0.84)}

    @pytest.mark.unit
    def test_weights_empty(self):
        assert build_folder_weight_map(None) == {}


class TestRankContextPackItems:
    """Test ranking of pack items"""

    @pytest.mark.unit
    def test_empty_query_prefers_discovery_order(self, sample_items):
        """Pack of 3, top_k=2, empty query: first two items in insertion order"""
        weights = build_folder_weight_map(["Notes/Projects"])
        ranked = rank_context_pack_items(sample_items, query="", top_k=2, folder_weights=weights)

        assert [item.path for item in ranked] == [
            "Notes/Projects/alpha.md",
            "Notes/Projects/beta.md",
        ]

    @pytest.mark.unit
    def test_query_matches_path_before_preview(self):
        items = [
            make_item("misc.md", preview="the budget is tight", folder=""),
            make_item("budget.md", preview="numbers", folder=""),
        ]
        ranked = rank_context_pack_items(items, query="budget")

        assert ranked[0].path == "budget.md"
        assert ranked[1].path == "misc.md"

    @pytest.mark.unit
    def test_preview_overlap_lifts_item(self, sample_items):
        ranked = rank_context_pack_items(sample_items, query="hiring roadmap", top_k=1)
        assert ranked[0].path == "Notes/Projects/beta.md"

    @pytest.mark.unit
    def test_folder_weight_breaks_even_scores(self):
        items = [
            make_item("Archive/old.md", folder="Archive"),
            make_item("Inbox/new.md", folder="Inbox"),
        ]
        weights = build_folder_weight_map(["Inbox", "Archive"])
        ranked = rank_context_pack_items(items, query="unrelated words", folder_weights=weights)

        assert [item.path for item in ranked] == ["Inbox/new.md", "Archive/old.md"]

    @pytest.mark.unit
    def test_ties_keep_original_index(self):
        items = [make_item(f"Notes/n{i}.md") for i in range(5)]
        ranked = rank_context_pack_items(items, query="nothing matches here")

        assert [item.path for item in ranked] == [item.path for item in items]

    @pytest.mark.unit
    def test_deduplicates_by_mention_path(self):
        items = [
            make_item("Notes/a.md"),
            ContextPackItem(path="Notes/a.txt", mention_path="Notes/a", folder_path="Notes"),
            make_item("Notes/b.md"),
        ]
        ranked = rank_context_pack_items(items, query="")

        assert [item.path for item in ranked] == ["Notes/a.md", "Notes/b.md"]

    @pytest.mark.unit
    def test_top_k_bound(self):
        items = [make_item(f"Notes/n{i}.md") for i in range(20)]

        assert len(rank_context_pack_items(items, top_k=3)) == 3
        assert len(rank_context_pack_items(items, top_k=0)) == 8
        assert len(rank_context_pack_items(items, top_k=50)) == 20
        assert rank_context_pack_items([], top_k=3) == []

    @pytest.mark.unit
    def test_ranking_is_deterministic(self, sample_items):
        first = rank_context_pack_items(sample_items, query="revenue plan", top_k=3)
        second = rank_context_pack_items(sample_items, query="revenue plan", top_k=3)
        assert first == second

    @pytest.mark.unit
    def test_positional_bonus_only_without_query(self):
        item = make_item("Notes/a.md")
        assert score_item(item, 0, [], {}) == 1
        assert score_item(item, 100, [], {}) == pytest.approx(0.5)
        assert score_item(item, 400, [], {}) == 0
        assert score_item(item, 0, ["zzz"], {}) == 0
