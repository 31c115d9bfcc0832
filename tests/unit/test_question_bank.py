"""
Unit tests for the question bank.
"""

import random

import pytest

from quizcycle.content.source import InMemoryContentSource
from quizcycle.core.difficulty import Difficulty
from quizcycle.questions.base import QuestionType
from quizcycle.quiz.question_bank import QuestionBank, content_hash, normalize_mcq_answer

OPTIONS = ["alpha", "beta", "gamma", "delta"]


class StubGenerator:
    """Produces questions through the shared factory and records calls."""

    def __init__(self, make_question, overrides=None):
        self.make_question = make_question
        self.overrides = overrides or {}
        self.calls = []

    def generate_questions(self, topic, count, difficulty, content=None):
        self.calls.append((topic, count, difficulty))
        return [
            self.make_question(topic=topic, difficulty=difficulty, id="", **self.overrides)
            for _ in range(count)
        ]


@pytest.fixture
def content():
    return InMemoryContentSource(
        {"networking": {"tcp.md": "TCP is connection oriented.", "udp.md": "UDP is not."}}
    )


class TestNormalizeMcqAnswer:
    """Test mapping generated answers onto options."""

    @pytest.mark.parametrize(
        "answer,expected",
        [
            ("beta", "beta"),
            ("  beta ", "beta"),
            ("B", "beta"),
            ("b)", "beta"),
            ("C. gamma", "gamma"),
            ("(D) delta", "delta"),
            ("Beta", "beta"),
            ("The answer is gamma", "gamma"),
        ],
    )
    def test_matches(self, answer, expected):
        assert normalize_mcq_answer(answer, OPTIONS) == expected

    @pytest.mark.parametrize("answer", [None, "", "omega", "F"])
    def test_no_match(self, answer):
        assert normalize_mcq_answer(answer, OPTIONS) is None

    def test_no_options(self):
        assert normalize_mcq_answer("beta", []) is None


class TestContentHash:
    """Test content hashing."""

    def test_independent_of_file_order(self):
        a = {"a.md": "one", "b.md": "two"}
        b = {"b.md": "two", "a.md": "one"}
        assert content_hash(a) == content_hash(b)

    def test_changes_with_text(self):
        assert content_hash({"a.md": "one"}) != content_hash({"a.md": "one!"})

    def test_changes_with_filename(self):
        assert content_hash({"a.md": "one"}) != content_hash({"b.md": "one"})


class TestReadsAndWrites:
    """Test storing and looking up questions."""

    def test_add_assigns_missing_ids(self, services, make_question):
        stored = services.bank.add_questions([make_question(id=""), make_question()])
        assert all(q.id for q in stored)
        assert stored[0].id != stored[1].id
        assert services.bank.count("networking") == 2

    def test_questions_for_filters_and_excludes(self, services, make_question):
        easy = [make_question() for _ in range(3)]
        medium = make_question(difficulty=Difficulty.MEDIUM)
        other = make_question(topic="security")
        services.bank.add_questions(easy + [medium, other])

        found = services.bank.questions_for("networking", Difficulty.EASY, exclude_ids=[easy[0].id])
        assert {q.id for q in found} == {easy[1].id, easy[2].id}
        assert services.bank.questions_for("networking", "medium") == [medium]
        assert len(services.bank.questions_for("networking", Difficulty.EASY, limit=2)) == 2

    def test_round_trips_question_fields(self, services, make_question):
        question = make_question(
            question_type=QuestionType.SHORT_ANSWER,
            correct_answer="three-way handshake",
            source_file="tcp.md",
        )
        services.bank.add_questions([question])
        assert services.bank.get(question.id) == question

    def test_mcq_option_order_preserved(self, services, make_question):
        question = make_question(options=("delta", "alpha", "gamma", "beta"))
        services.bank.add_questions([question])
        assert services.bank.get(question.id).options == ("delta", "alpha", "gamma", "beta")

    def test_get_by_ids_keeps_order(self, services, make_question):
        questions = [make_question() for _ in range(3)]
        services.bank.add_questions(questions)

        wanted = [questions[2].id, "missing", questions[0].id]
        assert [q.id for q in services.bank.get_by_ids(wanted)] == [questions[2].id, questions[0].id]

    def test_get_unknown(self, services):
        assert services.bank.get("nope") is None

    def test_stats_and_topics(self, services, make_question):
        services.bank.add_questions(
            [make_question(), make_question(), make_question(difficulty=Difficulty.HARD), make_question(topic="security")]
        )
        assert services.bank.stats() == [
            ("networking", "EASY", 2),
            ("networking", "HARD", 1),
            ("security", "EASY", 1),
        ]
        assert services.bank.topics() == {"networking", "security"}


class TestRegenerate:
    """Test content-driven bank regeneration."""

    def test_generates_every_difficulty(self, session_factory, content, make_question):
        generator = StubGenerator(make_question)
        bank = QuestionBank(session_factory, content, generator, rng=random.Random(1))

        assert bank.regenerate("networking", 2) == 6
        assert [call[2] for call in generator.calls] == Difficulty.ordered()
        for level in Difficulty.ordered():
            assert bank.count("networking", level) == 2

    def test_unchanged_content_skipped(self, session_factory, content, make_question):
        generator = StubGenerator(make_question)
        bank = QuestionBank(session_factory, content, generator)
        bank.regenerate("networking", 2)

        assert bank.regenerate("networking", 2) == 0
        assert len(generator.calls) == 3
        assert bank.count("networking") == 6

    def test_force_replaces_bank(self, session_factory, content, make_question):
        generator = StubGenerator(make_question)
        bank = QuestionBank(session_factory, content, generator)
        bank.regenerate("networking", 2)
        before = {q.id for q in bank.questions_for("networking", Difficulty.EASY)}

        assert bank.regenerate("networking", 1, force=True) == 3
        after = {q.id for q in bank.questions_for("networking", Difficulty.EASY)}
        assert bank.count("networking") == 3
        assert not before & after

    def test_changed_content_regenerates(self, session_factory, content, make_question):
        generator = StubGenerator(make_question)
        bank = QuestionBank(session_factory, content, generator)
        bank.regenerate("networking", 1)

        content.add("networking", "ip.md", "IP routes packets.")
        assert bank.regenerate("networking", 1) == 3
        assert len(generator.calls) == 6

    def test_empty_content_clears_topic(self, session_factory, make_question):
        source = InMemoryContentSource()
        bank = QuestionBank(session_factory, source, StubGenerator(make_question))
        bank.add_questions([make_question(topic="legacy")])

        assert bank.regenerate("legacy", 2) == 0
        assert bank.count("legacy") == 0

    def test_letter_answers_normalized(self, session_factory, content, make_question):
        bank = QuestionBank(session_factory, content, StubGenerator(make_question, {"correct_answer": "C"}))
        bank.regenerate("networking", 1)
        assert {q.correct_answer for q in bank.questions_for("networking", Difficulty.EASY)} == {"gamma"}

    def test_unmatched_mcq_answers_dropped(self, session_factory, content, make_question):
        bank = QuestionBank(session_factory, content, StubGenerator(make_question, {"correct_answer": "omega"}))
        assert bank.regenerate("networking", 2) == 0
        assert bank.count("networking") == 0

    def test_answerless_questions_dropped(self, session_factory, content, make_question):
        generator = StubGenerator(
            make_question, {"question_type": QuestionType.SHORT_ANSWER, "correct_answer": None}
        )
        bank = QuestionBank(session_factory, content, generator)
        assert bank.regenerate("networking", 2) == 0

    def test_single_option_mcq_dropped(self, session_factory, content, make_question):
        generator = StubGenerator(make_question, {"options": ("beta",)})
        bank = QuestionBank(session_factory, content, generator)
        assert bank.regenerate("networking", 2) == 0

    @pytest.mark.parametrize("answer,stored", [("maybe", 0), ("True", 3), ("FALSE", 3)])
    def test_true_false_answers_checked(self, session_factory, content, make_question, answer, stored):
        generator = StubGenerator(
            make_question, {"question_type": QuestionType.TRUE_FALSE, "correct_answer": answer}
        )
        bank = QuestionBank(session_factory, content, generator)
        assert bank.regenerate("networking", 1) == stored

    def test_requires_generator(self, session_factory, content):
        with pytest.raises(ValueError):
            QuestionBank(session_factory, content).regenerate("networking", 1)
