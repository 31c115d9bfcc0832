"""
LLM question generator.

Turns topic content into questions. A snippet whose generation fails is
logged and skipped; the batch keeps going.
"""

from __future__ import annotations

import random
import uuid
from typing import Any

from loguru import logger

from quizcycle.content.source import ContentSource
from quizcycle.core.difficulty import Difficulty
from quizcycle.core.exceptions import ExternalServiceError
from quizcycle.integrations.llm_client import ChatMessage, LLMClient
from quizcycle.questions.base import Question, QuestionType

from .prompts import GENERATION_SYSTEM_PROMPT, GENERATION_USER_PROMPT


def parse_generated_question(
    data: dict[str, Any],
    topic: str,
    difficulty: Difficulty,
    source_file: str | None = None,
) -> Question:
    """
    Build a Question from the model's JSON reply.

    Raises:
        ExternalServiceError: If the question text or type is missing or unknown
    """
    text = str(data.get("question") or "").strip()
    if not text:
        raise ExternalServiceError("Generated question has no text")
    try:
        question_type = QuestionType(str(data.get("type", "")).strip().upper())
    except ValueError as e:
        raise ExternalServiceError(f"Unknown generated question type: {data.get('type')!r}") from e

    options = tuple(str(o).strip() for o in data.get("options") or () if str(o).strip())
    answer = data.get("correctAnswer")
    return Question(
        id=str(uuid.uuid4()),
        topic=topic,
        difficulty=difficulty,
        question_type=question_type,
        prompt=text,
        options=options if question_type == QuestionType.MULTIPLE_CHOICE else (),
        correct_answer=str(answer).strip() if answer is not None else None,
        explanation=data.get("explanation"),
        source_file=source_file,
    )


class QuestionGenerator:
    """Generates questions from topic content through the LLM client."""

    def __init__(
        self,
        client: LLMClient,
        content_source: ContentSource | None = None,
        rng: random.Random | None = None,
    ):
        self.client = client
        self.content_source = content_source
        self.rng = rng or random.Random()

    def generate_question(
        self,
        content: str,
        topic: str,
        difficulty: Difficulty,
        source_file: str | None = None,
    ) -> Question:
        """Generate a single question from a content snippet."""
        prompt = GENERATION_USER_PROMPT.format(content=content, difficulty=difficulty.value)
        data = self.client.complete_json(
            [ChatMessage("system", GENERATION_SYSTEM_PROMPT), ChatMessage("user", prompt)]
        )
        return parse_generated_question(data, topic, difficulty, source_file)

    def generate_questions(
        self,
        topic: str,
        count: int,
        difficulty: Difficulty,
        content: dict[str, str] | None = None,
    ) -> list[Question]:
        """
        Generate up to ``count`` questions from randomly chosen files of the topic.

        Args:
            topic: Topic name
            count: Number of questions wanted
            difficulty: Difficulty to request
            content: filename -> text; read from the content source when None

        Returns:
            Generated questions (fewer than ``count`` when snippets fail)
        """
        if content is None:
            if self.content_source is None:
                raise ValueError("No content given and no content source configured")
            content = self.content_source.content_for(topic)
        files = [(name, text) for name, text in content.items() if text.strip()]
        if not files:
            logger.warning(f"No content available for topic {topic}")
            return []

        questions: list[Question] = []
        for _ in range(count):
            filename, text = self.rng.choice(files)
            try:
                questions.append(self.generate_question(text, topic, difficulty, filename))
            except ExternalServiceError as e:
                logger.warning(f"Skipping generation from {filename} ({topic}/{difficulty.value}): {e}")
        logger.info(f"Generated {len(questions)}/{count} {difficulty.value} questions for {topic}")
        return questions
