"""
Question Bank.

Pre-generated questions stored per topic and difficulty. Sessions draw from
the bank instead of calling the LLM on demand.

Regeneration:
1. Hash the topic's content; skip when the stored hash matches
2. Clear the topic's bank
3. Generate per_difficulty_target questions for each difficulty
4. Normalize multiple choice answers to one of the options; drop questions their
   type validator rejects (no answer, too few options, non-boolean true/false)
"""

from __future__ import annotations

import hashlib
import random
import re
import uuid
from collections.abc import Iterable
from dataclasses import replace

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from quizcycle.content.source import ContentSource
from quizcycle.core.difficulty import Difficulty
from quizcycle.db import queries
from quizcycle.db.database import unit_of_work
from quizcycle.db.models import QuestionBankEntry
from quizcycle.questions import get_validator
from quizcycle.questions.base import Question, QuestionType

_LETTER_PREFIX = re.compile(r"^\s*\(?([A-Za-z])[\.\):]\s*")


def content_hash(content: dict[str, str]) -> str:
    """SHA-256 over the topic's files in a stable (sorted) order."""
    digest = hashlib.sha256()
    for filename in sorted(content):
        digest.update(filename.encode("utf-8"))
        digest.update(b"\0")
        digest.update(content[filename].encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


def normalize_mcq_answer(answer: str | None, options: Iterable[str]) -> str | None:
    """
    Map a generated multiple choice answer onto one of the option strings.

    Tries an exact match, then a letter prefix ("B", "B.", "b)"), then
    containment either way. Returns None when nothing matches.
    """
    if answer is None:
        return None
    choices = [o.strip() for o in options]
    given = answer.strip()
    if not given or not choices:
        return None

    for choice in choices:
        if choice == given:
            return choice

    match = _LETTER_PREFIX.match(given)
    letter = match.group(1) if match else (given if len(given) == 1 and given.isalpha() else None)
    if letter:
        index = ord(letter.upper()) - ord("A")
        if 0 <= index < len(choices):
            return choices[index]

    lowered = given.lower()
    for choice in choices:
        if choice.lower() in lowered or lowered in choice.lower():
            return choice
    return None


def entry_to_question(entry: QuestionBankEntry) -> Question:
    return Question(
        id=entry.id,
        topic=entry.topic,
        difficulty=Difficulty.parse(entry.difficulty),
        question_type=QuestionType(entry.question_type),
        prompt=entry.question_text,
        options=tuple(entry.options or ()),
        correct_answer=entry.correct_answer,
        explanation=entry.explanation,
        source_file=entry.source_file,
    )


class QuestionBank:
    """Database-backed question bank."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        content_source: ContentSource | None = None,
        generator=None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the bank.

        Args:
            session_factory: Database session factory (process default if None)
            content_source: Topic content for regeneration
            generator: QuestionGenerator used by regenerate()
            rng: Random source for shuffling, injectable for tests
        """
        self.session_factory = session_factory
        self.content_source = content_source
        self.generator = generator
        self.rng = rng or random.Random()

    # ========================================
    # Reads
    # ========================================

    def questions_for(
        self,
        topic: str,
        difficulty: Difficulty | str,
        limit: int | None = None,
        exclude_ids: Iterable[str] = (),
        db: Session | None = None,
    ) -> list[Question]:
        """
        Stored questions for a topic and difficulty, in random order.

        Entries are returned as stored, including any without an answer;
        session creation rejects those as an integrity fault.
        """
        level = Difficulty.parse(difficulty)
        with unit_of_work(db, self.session_factory) as session:
            entries = queries.bank_entries(session, topic, level.value, exclude_ids)
            questions = [entry_to_question(e) for e in entries]
        self.rng.shuffle(questions)
        return questions if limit is None else questions[:limit]

    def get_by_ids(self, ids: Iterable[str], db: Session | None = None) -> list[Question]:
        """Questions for the given ids in the requested order; unknown ids are skipped."""
        wanted = list(ids)
        with unit_of_work(db, self.session_factory) as session:
            by_id = {e.id: entry_to_question(e) for e in queries.bank_entries_by_ids(session, wanted)}
        return [by_id[i] for i in wanted if i in by_id]

    def get(self, question_id: str, db: Session | None = None) -> Question | None:
        found = self.get_by_ids([question_id], db=db)
        return found[0] if found else None

    def count(self, topic: str, difficulty: Difficulty | str | None = None, db: Session | None = None) -> int:
        level = Difficulty.parse(difficulty).value if difficulty is not None else None
        with unit_of_work(db, self.session_factory) as session:
            return len(queries.bank_entries(session, topic, level))

    def stats(self, db: Session | None = None) -> list[tuple[str, str, int]]:
        """(topic, difficulty, count) for every populated bucket."""
        with unit_of_work(db, self.session_factory) as session:
            return queries.bank_counts(session)

    def topics(self, db: Session | None = None) -> set[str]:
        return {topic for topic, _, _ in self.stats(db=db)}

    # ========================================
    # Writes
    # ========================================

    def add_questions(
        self,
        questions: Iterable[Question],
        hash_value: str | None = None,
        db: Session | None = None,
    ) -> list[Question]:
        """Store questions, assigning ids to those without one. Returns the stored questions."""
        stored: list[Question] = []
        with unit_of_work(db, self.session_factory) as session:
            for question in questions:
                question_id = question.id or str(uuid.uuid4())
                session.merge(
                    QuestionBankEntry(
                        id=question_id,
                        topic=question.topic,
                        difficulty=question.difficulty.value,
                        question_type=question.question_type.value,
                        question_text=question.prompt,
                        options=list(question.options),
                        correct_answer=question.correct_answer,
                        explanation=question.explanation,
                        source_file=question.source_file,
                        content_hash=hash_value,
                    )
                )
                stored.append(question if question.id else replace(question, id=question_id))
            session.flush()
        logger.debug(f"Stored {len(stored)} questions in the bank")
        return stored

    def regenerate(self, topic: str, per_difficulty_target: int, force: bool = False) -> int:
        """
        Rebuild the topic's bank from its content.

        Args:
            topic: Topic name
            per_difficulty_target: Questions to generate per difficulty
            force: Regenerate even if the content hash is unchanged

        Returns:
            Number of questions stored (0 when skipped or content is empty)
        """
        if self.content_source is None or self.generator is None:
            raise ValueError("Regeneration needs a content source and a generator")

        content = self.content_source.content_for(topic)
        with unit_of_work(None, self.session_factory) as session:
            if not content:
                removed = queries.delete_topic_entries(session, topic)
                logger.info(f"No content for {topic}; cleared {removed} bank entries")
                return 0

            new_hash = content_hash(content)
            if not force and queries.topic_content_hash(session, topic) == new_hash:
                logger.info(f"Content for {topic} unchanged; keeping existing bank")
                return 0

        # LLM calls run outside any transaction
        generated: list[Question] = []
        for level in Difficulty.ordered():
            for question in self.generator.generate_questions(topic, per_difficulty_target, level, content=content):
                cleaned = self._clean(question)
                if cleaned is not None:
                    generated.append(cleaned)

        with unit_of_work(None, self.session_factory) as session:
            removed = queries.delete_topic_entries(session, topic)
            session.flush()
            self.add_questions(generated, hash_value=new_hash, db=session)

        logger.info(f"Regenerated bank for {topic}: removed {removed}, stored {len(generated)}")
        return len(generated)

    def _clean(self, question: Question) -> Question | None:
        if question.question_type == QuestionType.MULTIPLE_CHOICE:
            normalized = normalize_mcq_answer(question.correct_answer, question.options)
            if normalized is None:
                logger.warning(f"Dropping multiple choice question with unmatched answer: {question.prompt[:60]}")
                return None
            question = replace(question, correct_answer=normalized)
        if not get_validator(question.question_type).validate(question):
            logger.warning(
                f"Dropping malformed {question.question_type.value} question: {question.prompt[:60]}"
            )
            return None
        return question
