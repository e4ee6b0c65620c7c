"""Tests for relevance ranking."""
import pytest

from auditmatch.schemas.policy import DocumentDescriptor
from auditmatch.schemas.question import Question
from auditmatch.services.relevance_service import (
    RelevanceService,
    fuzzy_match,
    levenshtein_distance,
    normalize_document,
    normalize_question,
    score_document,
    similarity,
)
from auditmatch.storage.ttl_cache import TTLCache


def _question(**overrides):
    data = {
        "id": 1,
        "text": "Does the P&P state it",
        "category": "Privacy & Security",
        "keywords": ["privacy", "security"],
        "description": "",
    }
    data.update(overrides)
    return Question(**data)


def _document(name="HR Handbook.pdf", **overrides):
    data = {
        "subfolder": "Privacy",
        "pdf_name": name,
        "category": "Privacy & Security",
        "keywords": ["privacy", "secur"],
        "short_description": "",
    }
    data.update(overrides)
    return DocumentDescriptor.model_validate(data)


def _score(question, document):
    return score_document(normalize_question(question), normalize_document(document))


class TestLevenshtein:
    def test_identical(self):
        assert levenshtein_distance("privacy", "privacy") == 0

    def test_empty(self):
        assert levenshtein_distance("", "abc") == 3

    def test_classic(self):
        assert levenshtein_distance("kitten", "sitting") == 3


class TestFuzzyMatch:
    def test_exactly_at_threshold_matches(self):
        # length 10, distance 3 -> similarity 0.7
        assert similarity("abcdefghij", "abcdefgxyz") == 0.7
        assert fuzzy_match("abcdefghij", "abcdefgxyz")

    def test_below_threshold_does_not_match(self):
        # length 10, distance 4 -> similarity 0.6
        assert similarity("abcdefghij", "abcdefwxyz") == pytest.approx(0.6)
        assert not fuzzy_match("abcdefghij", "abcdefwxyz")

    def test_two_empty_strings(self):
        assert similarity("", "") == 1.0


class TestScoring:
    def test_additive_composition(self):
        # category 50
        # "privacy"/"privacy": contains 20 + exact 30 + fuzzy 15
        # "security"/"secur": contains 20 (similarity 0.625, no fuzzy bonus)
        assert _score(_question(), _document()) == 50 + 20 + 30 + 15 + 20

    def test_category_compared_case_insensitively(self):
        assert _score(_question(category="privacy & SECURITY"), _document()) == 135

    def test_description_bonuses_double_count(self):
        doc = _document(category="Other", keywords=[], short_description="privacy rules")
        question = _question(keywords=["privacy"], text="x")
        # +10 description contains, +5 description-or-name
        assert _score(question, doc) == 15

    def test_name_bonus_only(self):
        doc = _document(name="Privacy Notice.pdf", category="Other", keywords=[])
        question = _question(keywords=["privacy"], text="x")
        assert _score(question, doc) == 5

    def test_question_words_longer_than_three(self):
        doc = _document(category="Other", keywords=[], short_description="encryption of member data")
        question = _question(keywords=[], text="Does encryption cover data at rest")
        # "encryption" and "data" qualify; "does", "cover", "rest" are absent
        assert _score(question, doc) == 6

    def test_blank_keywords_ignored(self):
        doc = _document(category="Other", keywords=["", "  "], short_description="anything")
        question = _question(keywords=["", "privacy"], text="x")
        assert _score(question, doc) == 0


class TestRank:
    def test_empty_index(self):
        assert RelevanceService().rank(_question(), []) == []

    def test_sorted_descending_and_zero_scores_dropped(self):
        strong = _document(name="Strong.pdf")
        weak = _document(name="Weak.pdf", category="Other", keywords=["security"])
        none = _document(name="None.pdf", category="Other", keywords=["billing"])
        ranked = RelevanceService().rank(_question(text="x"), [weak, none, strong])
        assert [d.name for d in ranked] == ["Strong.pdf", "Weak.pdf"]
        assert ranked[0].score > ranked[1].score > 0

    def test_ties_keep_index_order(self):
        docs = [_document(name=f"Doc{i}.pdf") for i in range(4)]
        ranked = RelevanceService().rank(_question(), docs)
        assert [d.name for d in ranked] == ["Doc0.pdf", "Doc1.pdf", "Doc2.pdf", "Doc3.pdf"]

    def test_max_results(self):
        docs = [_document(name=f"Doc{i}.pdf") for i in range(12)]
        service = RelevanceService()
        assert len(service.rank(_question(), docs)) == 10
        assert len(service.rank(_question(), docs, max_results=3)) == 3

    def test_deterministic(self):
        docs = [_document(name="A.pdf"), _document(name="B.pdf", keywords=["privacy"])]
        first = RelevanceService().rank(_question(), docs)
        second = RelevanceService().rank(_question(), docs)
        assert first == second

    def test_cached_ranking_reused_before_expiry(self):
        now = [0.0]
        service = RelevanceService(cache=TTLCache("rankings", 1800, clock=lambda: now[0]))
        question = _question()
        first = service.rank(question, [_document(name="A.pdf")])

        # a different index is ignored while the cached ranking is alive
        now[0] = 1799
        again = service.rank(question, [_document(name="B.pdf")])
        assert [d.name for d in again] == [d.name for d in first] == ["A.pdf"]

        now[0] = 1800
        recomputed = service.rank(question, [_document(name="B.pdf")])
        assert [d.name for d in recomputed] == ["B.pdf"]

    def test_signature_ignores_keyword_order_and_case(self):
        a = _question(keywords=["Privacy", "security"])
        b = _question(keywords=["security", "privacy"], id=99)
        assert RelevanceService.question_signature(a) == RelevanceService.question_signature(b)

    def test_clear_cache(self):
        service = RelevanceService()
        service.rank(_question(), [_document()])
        assert service.get_stats()["size"] == 1
        service.clear_cache()
        assert service.get_stats()["size"] == 0
