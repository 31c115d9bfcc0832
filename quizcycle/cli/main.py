"""
Typer CLI for quizcycle.

Commands:
    quizcycle db init                     - Initialize database tables
    quizcycle bank import FILE            - Import questions from a JSON list
    quizcycle bank generate TOPIC         - Regenerate a topic's bank with the LLM
    quizcycle bank stats                  - Show question counts per topic/difficulty
    quizcycle bank topics                 - List content topics with banked counts
    quizcycle quiz start USER TOPIC       - Run an interactive quiz session
    quizcycle review due USER             - List questions due for review
    quizcycle progress show USER          - Show topic progress
    quizcycle progress reset-expired      - Reset idle learning cycles

Usage:
    quizcycle --help
    quizcycle bank generate networking --per-difficulty 10
    quizcycle quiz start alice networking --difficulty easy --count 5
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from quizcycle.config import Settings, get_settings
from quizcycle.core.difficulty import Difficulty
from quizcycle.core.exceptions import DataIntegrityError, InvalidArgumentError, QuizError
from quizcycle.core.logging import configure_logging
from quizcycle.questions.base import Question, QuestionType

app = typer.Typer(help="quizcycle: adaptive interview quizzes with spaced repetition")
console = Console()


@app.callback()
def main_callback() -> None:
    """Configure logging from settings before any command runs."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_file)


# ========================================
# Context Builder (Dependency Injection)
# ========================================


class CLIContext:
    """
    Dependency injection container for CLI commands.

    Lazily builds services from settings so commands only pay for what they use.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._session_factory = None
        self._llm_client = None
        self._bank = None
        self._mastery = None
        self._momentum = None
        self._scheduler = None
        self._engine = None
        self._progress = None

    @property
    def session_factory(self):
        if self._session_factory is None:
            from quizcycle.db.database import create_session_factory

            self._session_factory = create_session_factory(self.settings.database_url)
        return self._session_factory

    @property
    def llm_client(self):
        """LLM client, or None when no API key is configured."""
        if self._llm_client is None and self.settings.has_llm_configured():
            from quizcycle.integrations.llm_client import LLMClient

            self._llm_client = LLMClient.from_settings(self.settings)
        return self._llm_client

    @property
    def bank(self):
        if self._bank is None:
            from quizcycle.content.source import JsonContentSource
            from quizcycle.generation.question_generator import QuestionGenerator
            from quizcycle.quiz.question_bank import QuestionBank

            source = JsonContentSource(self.settings.content_file) if self.settings.content_file else None
            generator = QuestionGenerator(self.llm_client, source) if self.llm_client else None
            self._bank = QuestionBank(self.session_factory, content_source=source, generator=generator)
        return self._bank

    @property
    def scheduler(self):
        if self._scheduler is None:
            from quizcycle.delivery.scheduler import SM2Config, SpacedRepetitionScheduler

            self._scheduler = SpacedRepetitionScheduler(
                self.session_factory, SM2Config.from_dict(self.settings.get_sm2_config())
            )
        return self._scheduler

    @property
    def mastery(self):
        if self._mastery is None:
            from quizcycle.learning.mastery_tracker import LearningCycleConfig, MasteryTracker

            self._mastery = MasteryTracker(
                self.session_factory, LearningCycleConfig.from_dict(self.settings.get_learning_config())
            )
        return self._mastery

    @property
    def momentum(self):
        if self._momentum is None:
            from quizcycle.delivery.telemetry import MomentumConfig, SessionMomentumTracker

            self._momentum = SessionMomentumTracker(
                MomentumConfig.from_dict(self.settings.get_momentum_config())
            )
        return self._momentum

    @property
    def engine(self):
        if self._engine is None:
            from quizcycle.generation.answer_evaluator import AnswerEvaluator
            from quizcycle.learning.question_selector import QuestionSelector
            from quizcycle.study.quiz_engine import QuizSessionEngine

            selector = QuestionSelector(
                self.scheduler,
                self.mastery,
                self.momentum,
                self.bank,
                due_overfetch=self.settings.selection_due_overfetch,
            )
            evaluator = (
                AnswerEvaluator(self.llm_client, self.settings.evaluation_similarity_threshold)
                if self.llm_client
                else None
            )
            self._engine = QuizSessionEngine(
                selector,
                self.session_factory,
                evaluator=evaluator,
                max_question_count=self.settings.quiz_max_question_count,
            )
        return self._engine

    @property
    def progress(self):
        if self._progress is None:
            from quizcycle.study.progress_service import ProgressService

            self._progress = ProgressService(self.mastery, self.session_factory)
        return self._progress


def _build_context() -> CLIContext:
    """Build CLI context with dependency injection."""
    return CLIContext()


def _fail(error: QuizError) -> None:
    if isinstance(error, DataIntegrityError):
        console.print(f"[red]Internal error:[/red] {error}")
    else:
        console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(code=1)


# ========================================
# DB COMMANDS
# ========================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    from quizcycle.db.database import init_db

    init_db(_build_context().session_factory)
    rprint("[green]✓[/green] Database initialized!")


# ========================================
# BANK COMMANDS
# ========================================

bank_app = typer.Typer(help="Question bank (import, generate, topics, stats)")
app.add_typer(bank_app, name="bank")


@bank_app.command("import")
def bank_import(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with a list of questions"),
) -> None:
    """Import questions from a JSON list of question objects."""
    ctx = _build_context()
    try:
        items = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(items, list):
            raise InvalidArgumentError("Question file must contain a JSON list")
        questions = [Question.from_dict(item) for item in items]
        stored = ctx.bank.add_questions(questions)
    except QuizError as e:
        _fail(e)
    except (ValueError, KeyError) as e:
        console.print(f"[red]Invalid question file:[/red] {e}")
        raise typer.Exit(code=1)
    rprint(f"[green]✓[/green] Imported {len(stored)} questions")


@bank_app.command("generate")
def bank_generate(
    topic: str = typer.Argument(..., help="Topic to regenerate"),
    per_difficulty: int = typer.Option(5, "--per-difficulty", "-n", help="Questions per difficulty"),
    force: bool = typer.Option(False, "--force", help="Regenerate even if content is unchanged"),
) -> None:
    """Regenerate a topic's questions from its content with the LLM."""
    ctx = _build_context()
    if ctx.bank.generator is None or ctx.bank.content_source is None:
        console.print("[red]Error:[/red] LLM_API_KEY and CONTENT_FILE must be configured")
        raise typer.Exit(code=1)
    stored = ctx.bank.regenerate(topic, per_difficulty, force=force)
    rprint(f"[green]✓[/green] {topic}: {stored} questions stored")


@bank_app.command("topics")
def bank_topics() -> None:
    """List content topics and how many questions each has banked."""
    ctx = _build_context()
    if ctx.bank.content_source is None:
        console.print("[red]Error:[/red] CONTENT_FILE must be configured")
        raise typer.Exit(code=1)
    try:
        topics = ctx.bank.content_source.list_topics()
    except ValueError as e:
        console.print(f"[red]Invalid content file:[/red] {e}")
        raise typer.Exit(code=1)
    if not topics:
        rprint("[yellow]No content topics[/yellow]")
        return
    table = Table(title="Content Topics")
    table.add_column("Topic", style="cyan")
    table.add_column("Questions", justify="right")
    for topic in sorted(topics):
        table.add_row(topic, str(ctx.bank.count(topic)))
    console.print(table)


@bank_app.command("stats")
def bank_stats() -> None:
    """Show question counts per topic and difficulty."""
    rows = _build_context().bank.stats()
    if not rows:
        rprint("[yellow]Question bank is empty[/yellow]")
        return
    table = Table(title="Question Bank")
    table.add_column("Topic", style="cyan")
    table.add_column("Difficulty")
    table.add_column("Questions", justify="right")
    for topic, difficulty, count in rows:
        table.add_row(topic, difficulty, str(count))
    console.print(table)


# ========================================
# QUIZ COMMANDS
# ========================================

quiz_app = typer.Typer(help="Quiz sessions")
app.add_typer(quiz_app, name="quiz")


def _ask_answer(question: Question) -> str:
    """Prompt for an answer; multiple choice accepts the option number."""
    if question.question_type == QuestionType.MULTIPLE_CHOICE:
        for index, option in enumerate(question.options, start=1):
            console.print(f"  [cyan]{index}[/cyan]. {option}")
        raw = Prompt.ask("Answer (number, blank to skip)", default="").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(question.options):
            return question.options[int(raw) - 1]
        return raw
    if question.question_type == QuestionType.TRUE_FALSE:
        return Prompt.ask("True or False (blank to skip)", default="").strip()
    return Prompt.ask("Your answer (blank to skip)", default="").strip()


@quiz_app.command("start")
def quiz_start(
    user: str = typer.Argument(..., help="User id"),
    topic: str = typer.Argument(..., help="Topic name"),
    difficulty: str = typer.Option("EASY", "--difficulty", "-d", help="EASY, MEDIUM or HARD"),
    count: int = typer.Option(5, "--count", "-c", help="Number of questions"),
) -> None:
    """Run an interactive quiz session."""
    engine = _build_context().engine
    try:
        session = engine.start_session(user, topic, difficulty, count)
    except QuizError as e:
        _fail(e)

    if len(session.questions) < session.requested_count:
        rprint(f"[yellow]Only {len(session.questions)} of {session.requested_count} questions available[/yellow]")

    for number, question in enumerate(session.questions, start=1):
        console.print(Panel(question.prompt, title=f"Question {number}/{len(session.questions)}", border_style="cyan"))
        while True:
            answer = _ask_answer(question)
            if not answer:
                break
            try:
                result = engine.submit_answer(session.id, question.id, answer)
            except InvalidArgumentError as e:
                console.print(f"[yellow]{e}[/yellow]")
                continue
            except QuizError as e:
                _fail(e)
            verdict = "[green]Correct![/green]" if result.correct else "[red]Incorrect[/red]"
            console.print(f"{verdict} {result.feedback}")
            if not result.correct and result.correct_answer:
                console.print(f"[dim]Answer:[/dim] {result.correct_answer}")
            if result.explanation:
                console.print(f"[dim]{result.explanation}[/dim]")
            break

    final = engine.end_session(session.id)
    rprint(f"\n[bold]Final score:[/bold] {final.score:.1f}%")


# ========================================
# REVIEW COMMANDS
# ========================================

review_app = typer.Typer(help="Spaced repetition review")
app.add_typer(review_app, name="review")


@review_app.command("due")
def review_due(
    user: str = typer.Argument(..., help="User id"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum questions to list"),
) -> None:
    """List questions due for review, earliest first."""
    ctx = _build_context()
    records = ctx.scheduler.due_questions(user, limit=limit)
    if not records:
        rprint(f"[green]Nothing due for {user}[/green]")
        return
    questions = {q.id: q for q in ctx.bank.get_by_ids(r.question_id for r in records)}
    table = Table(title=f"Due for {user} ({ctx.scheduler.count_due(user)} total)")
    table.add_column("Question")
    table.add_column("Topic", style="cyan")
    table.add_column("Ease", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Due since")
    for record in records:
        question = questions.get(record.question_id)
        table.add_row(
            question.prompt[:60] if question else record.question_id,
            question.topic if question else "-",
            f"{record.ease_factor:.2f}",
            f"{record.interval_days}d",
            record.next_review_date.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


# ========================================
# PROGRESS COMMANDS
# ========================================

progress_app = typer.Typer(help="Topic progress")
app.add_typer(progress_app, name="progress")


@progress_app.command("show")
def progress_show(
    user: str = typer.Argument(..., help="User id"),
    all_cycles: bool = typer.Option(False, "--all", help="Include reset (inactive) cycles"),
) -> None:
    """Show topic progress with per-difficulty accuracy."""
    ctx = _build_context()
    cycles = ctx.progress.user_progress(user, active_only=not all_cycles)
    if not cycles:
        rprint(f"[yellow]No progress recorded for {user}[/yellow]")
        return
    table = Table(title=f"Progress for {user}")
    table.add_column("Topic", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Attempts", justify="right")
    for level in Difficulty.ordered():
        table.add_column(level.value.title(), justify="right")
    table.add_column("Active")
    for cycle in cycles:
        by_level = {m.difficulty: m for m in cycle.mastery_records}
        cells = []
        for level in Difficulty.ordered():
            record = by_level.get(level.value)
            cells.append(f"{record.accuracy:.0f}% ({record.total_attempts})" if record else "-")
        table.add_row(
            cycle.topic,
            f"{cycle.overall_score:.1f}%",
            str(cycle.questions_attempted),
            *cells,
            "yes" if cycle.active else "no",
        )
    console.print(table)


@progress_app.command("reset-expired")
def progress_reset_expired() -> None:
    """Reset learning cycles idle for longer than LEARNING_CYCLE_DAYS."""
    count = _build_context().progress.reset_expired_progress()
    rprint(f"[green]✓[/green] Reset {count} expired progress records")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
