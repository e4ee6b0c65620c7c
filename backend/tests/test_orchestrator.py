"""Tests for the batch orchestrator pipeline."""
import pytest

from auditmatch.agents.evidence_judge import EvidenceJudgeAgent
from auditmatch.orchestrator import BatchOrchestrator
from auditmatch.orchestrator._types import evidence_sort_key
from auditmatch.schemas.evidence import Answer, Confidence, EvidenceCandidate
from auditmatch.schemas.policy import DocumentDescriptor, ScoredDocument
from auditmatch.schemas.question import Question
from auditmatch.schemas.stats import ProcessingStats
from auditmatch.services.relevance_service import RelevanceService
from conftest import judgment_json, make_dispatcher

INDEX = [
    DocumentDescriptor(
        subfolder="Privacy",
        name="HIPAA Privacy Policy.pdf",
        category="Privacy & Security",
        keywords=["privacy", "encryption"],
    ),
    DocumentDescriptor(
        subfolder="Privacy",
        name="Breach Notification.pdf",
        category="Privacy & Security",
        keywords=["breach", "notification"],
    ),
    DocumentDescriptor(subfolder="Claims", name="Claims Appeals.pdf", category="Claims", keywords=["appeals"]),
    # listed in the index but absent from the store
    DocumentDescriptor(subfolder="Finance", name="Budget.pdf", category="Finance", keywords=["budget"]),
]

QUESTIONS = [
    Question(id=1, text="Is PHI encrypted?", category="Privacy & Security", keywords=["privacy", "encryption"]),
    Question(id=2, text="Are appeals timely?", category="Claims", keywords=["appeals"]),
    Question(id=3, text="Are ads reviewed?", category="Marketing", keywords=["advertising"]),
    Question(id=4, text="Is there a budget?", category="Finance", keywords=["budget"]),
    Question(id=5, text="Is parking safe?", category="Facilities", keywords=["parking"]),
]


def default_handler(prompt):
    if "HIPAA Privacy Policy.pdf" in prompt:
        return judgment_json(confidence="medium", answer="yes")
    if "Breach Notification.pdf" in prompt:
        return judgment_json(confidence="high", answer="no")
    if "Claims Appeals.pdf" in prompt:
        return judgment_json(confidence="low", answer="partial")
    return judgment_json(has_answer=False, confidence="low", answer="no")


def make_orchestrator(content_service, handler=default_handler):
    dispatcher = make_dispatcher(handler)
    orchestrator = BatchOrchestrator(
        RelevanceService(),
        content_service,
        EvidenceJudgeAgent(dispatcher),
        question_pause_ms=0,
        download_pause_ms=0,
        judge_pause_ms=0,
    )
    return orchestrator, dispatcher.gateway.provider


class TestProcess:
    @pytest.mark.asyncio
    async def test_evidence_per_question(self, content_service):
        orchestrator, _ = make_orchestrator(content_service)
        evidence, stats = await orchestrator.process(QUESTIONS, INDEX)

        assert set(evidence) == {"1", "2", "3", "4", "5"}
        assert [(c.doc_name, c.confidence, c.answer) for c in evidence["1"]] == [
            ("Breach Notification.pdf", Confidence.HIGH, Answer.NO),
            ("HIPAA Privacy Policy.pdf", Confidence.MEDIUM, Answer.YES),
        ]
        assert evidence["1"][1].score > evidence["1"][0].score
        assert [(c.doc_name, c.answer) for c in evidence["2"]] == [("Claims Appeals.pdf", Answer.PARTIAL)]
        assert evidence["3"] == evidence["4"] == evidence["5"] == []

        assert stats.total_questions == 5
        assert stats.questions_processed == 5
        assert stats.failed_questions == 0
        assert stats.documents_checked == 3
        assert stats.evidence_found == 3
        assert stats.compliant_answers == 1
        assert stats.non_compliant_answers == 1
        assert stats.failed_downloads == 0
        assert stats.failed_analyses == 0

    @pytest.mark.asyncio
    async def test_empty_question_list(self, content_service):
        orchestrator, provider = make_orchestrator(content_service)
        evidence, stats = await orchestrator.process([], INDEX)
        assert evidence == {}
        assert stats.average_time_per_question_ms == 0
        assert provider.prompts == []

    @pytest.mark.asyncio
    async def test_failed_judgment_isolated(self, content_service):
        def handler(prompt):
            if "Breach Notification.pdf" in prompt:
                return ValueError("invalid_api_key")
            return default_handler(prompt)

        orchestrator, _ = make_orchestrator(content_service, handler)
        evidence, stats = await orchestrator.process(QUESTIONS[:1], INDEX)
        assert [c.doc_name for c in evidence["1"]] == ["HIPAA Privacy Policy.pdf"]
        assert stats.failed_analyses == 1
        assert stats.documents_checked == 1

    @pytest.mark.asyncio
    async def test_failed_download_not_judged(self, content_service, fake_store):
        fake_store.failing_ids.add("Privacy/Breach Notification.pdf")
        orchestrator, provider = make_orchestrator(content_service)
        evidence, stats = await orchestrator.process(QUESTIONS[:1], INDEX)
        assert [c.doc_name for c in evidence["1"]] == ["HIPAA Privacy Policy.pdf"]
        assert stats.failed_downloads == 1
        assert len(provider.prompts) == 1

    @pytest.mark.asyncio
    async def test_unreachable_store_fails_questions_only(self, content_service, fake_store):
        fake_store.reachable = False
        orchestrator, _ = make_orchestrator(content_service)
        evidence, stats = await orchestrator.process(QUESTIONS, INDEX)
        assert all(items == [] for items in evidence.values())
        # questions 1, 2 and 4 have ranked candidates and need the store
        assert stats.failed_questions == 3
        assert stats.questions_processed == 5


class TestCaching:
    @pytest.mark.asyncio
    async def test_second_run_served_from_caches(self, content_service, fake_store):
        orchestrator, provider = make_orchestrator(content_service)
        await orchestrator.process(QUESTIONS[:2], INDEX)
        assert len(provider.prompts) == 3

        evidence, stats = await orchestrator.process(QUESTIONS[:2], INDEX)
        assert len(provider.prompts) == 3
        assert fake_store.calls["get_bytes"] == 3
        # three text hits and three judgment hits
        assert stats.cache_hits == 6
        assert len(evidence["1"]) == 2

    @pytest.mark.asyncio
    async def test_cached_judgment_takes_current_document_fields(self, content_service):
        orchestrator, _ = make_orchestrator(content_service)
        question = QUESTIONS[0]
        text = "identical document text"
        first = ScoredDocument(subfolder="Privacy", name="HIPAA Privacy Policy.pdf", score=90)
        await orchestrator._judge_with_cache(question, text, first, ProcessingStats())

        other = ScoredDocument(subfolder="Archive", name="Copy.pdf", score=40)
        stats = ProcessingStats()
        candidate = await orchestrator._judge_with_cache(question, text, other, stats)
        assert (candidate.doc_name, candidate.subfolder, candidate.score) == ("Copy.pdf", "Archive", 40)
        assert stats.cache_hits == 1

    @pytest.mark.asyncio
    async def test_clear_cache(self, content_service):
        orchestrator, provider = make_orchestrator(content_service)
        await orchestrator.process(QUESTIONS[:1], INDEX)
        orchestrator.clear_cache()
        await orchestrator.process(QUESTIONS[:1], INDEX)
        assert len(provider.prompts) == 4
        assert orchestrator.get_cache_stats()["judgments"]["size"] == 2


def test_sort_key_orders_confidence_answer_score():
    def candidate(confidence, answer, score):
        return EvidenceCandidate(
            doc_name="d.pdf", subfolder="s", answer=answer, confidence=confidence, score=score
        )

    items = [
        candidate(Confidence.LOW, Answer.YES, 200),
        candidate(Confidence.HIGH, Answer.PARTIAL, 10),
        candidate(Confidence.HIGH, Answer.YES, 5),
        candidate(Confidence.HIGH, Answer.YES, 50),
    ]
    ordered = sorted(items, key=evidence_sort_key)
    assert [(c.confidence, c.answer, c.score) for c in ordered] == [
        (Confidence.HIGH, Answer.YES, 50),
        (Confidence.HIGH, Answer.YES, 5),
        (Confidence.HIGH, Answer.PARTIAL, 10),
        (Confidence.LOW, Answer.YES, 200),
    ]
