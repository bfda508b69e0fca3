"""Interactive review-session CLI."""
import logging
from datetime import datetime, timezone

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from recall_scheduler.config import Settings, configure_logging
from recall_scheduler.dashboard import get_retention_color, get_retention_label, get_summary
from recall_scheduler.db import init_db
from recall_scheduler.models import InvalidGradeError, QualityGrade
from recall_scheduler.sm2 import days_until_due
from recall_scheduler.store import (
    CardNotFoundError, add_card, get_due_card_ids, get_label, list_cards, load, record_review,
)
from recall_scheduler.triage import classify_difficulty, recommend_session_size

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "quit", "menu")
GRADE_HELP = "0=blackout 1=wrong 2=hard-wrong 3=hesitant 4=good 5=perfect"


class SessionExitRequested(Exception):
    """Raised when the learner leaves a session mid-way."""


def session_prompt(text: str, **kwargs) -> str:
    answer = Prompt.ask(text, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_grade_prompt(text: str) -> QualityGrade:
    """Ask until the learner types a valid 0-5 grade."""
    while True:
        answer = session_prompt(text)
        try:
            return QualityGrade.parse(answer)
        except InvalidGradeError as e:
            console.print(f"[red]{e}[/red]")


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def _describe_due(days: int) -> str:
    if days < 0:
        return f"{-days} day(s) overdue"
    if days == 0:
        return "due today"
    return f"due in {days} day(s)"


def show_welcome():
    console.print(Panel(
        "[bold]Recall Scheduler[/bold]\n[dim]SM-2 spaced repetition reviews[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("review", "Review due cards"),
        ("add", "Schedule a new card"),
        ("list", "Show scheduled cards"),
        ("stats", "Progress summary"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<10}[/cyan] {desc}")


def run_review_session(db_path: str, card_ids: list[str], now: datetime | None = None) -> int:
    """Grade each card in turn. Returns the number of cards graded.

    Typing q ends the session early; cards graded before that are already saved.
    """
    if not card_ids:
        console.print("[yellow]No cards due right now![/yellow]")
        return 0
    console.print(f"\n[bold]Review Session[/bold] ({len(card_ids)} cards)\n")
    graded = 0
    try:
        for i, card_id in enumerate(card_ids, 1):
            state = load(db_path, card_id)
            label = get_label(db_path, card_id) or card_id
            due_text = _describe_due(days_until_due(state, _now(now)))
            console.print(Panel(
                f"{label}\n[dim]{due_text}, {classify_difficulty(state).value}[/dim]",
                title=f"Card {i}/{len(card_ids)}", border_style="cyan",
            ))
            session_prompt("[dim]Press Enter when you have recalled the answer[/dim]", default="")
            grade = session_grade_prompt(f"Rate yourself ({GRADE_HELP})")
            updated = record_review(db_path, card_id, grade, _now(now))
            graded += 1
            colour = "green" if grade.is_pass else "red"
            console.print(
                f"[{colour}]Next review in {updated.interval} day(s)[/{colour}] "
                f"[dim]({updated.next_review_date:%Y-%m-%d})[/dim]\n"
            )
    except SessionExitRequested:
        console.print(f"[dim]Session ended early. {graded} card(s) saved.[/dim]")
    return graded


def cmd_review(db_path: str, settings: Settings, now: datetime | None = None) -> int:
    due = get_due_card_ids(db_path, _now(now))
    size = recommend_session_size(len(due))
    if settings.max_session_size is not None:
        size = min(size, settings.max_session_size)
    if due:
        console.print(f"[dim]{len(due)} card(s) due, studying {size}.[/dim]")
    return run_review_session(db_path, due[:size], now=now)


def cmd_add(db_path: str):
    card_id = Prompt.ask("Card id").strip()
    if not card_id:
        console.print("[red]Card id cannot be empty.[/red]")
        return
    label = Prompt.ask("Label", default="")
    state = add_card(db_path, card_id, label=label)
    console.print(f"[green]Scheduled {card_id}[/green] [dim](due {state.next_review_date:%Y-%m-%d})[/dim]")


def cmd_list(db_path: str, now: datetime | None = None):
    cards = list_cards(db_path)
    if not cards:
        console.print("[yellow]No cards scheduled yet. Use 'add' first.[/yellow]")
        return
    table = Table(title="Scheduled Cards")
    table.add_column("Card", style="cyan")
    table.add_column("Label")
    table.add_column("Reps", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Ease", justify="right")
    table.add_column("Due")
    table.add_column("Difficulty")
    for card in cards:
        state = card["state"]
        table.add_row(
            card["card_id"],
            card["label"],
            str(state.repetitions),
            f"{state.interval}d",
            f"{state.ease_factor:.2f}",
            _describe_due(days_until_due(state, _now(now))),
            classify_difficulty(state).value,
        )
    console.print(table)


def cmd_stats(db_path: str, now: datetime | None = None):
    summary = get_summary(db_path, _now(now))
    retention = summary["retention"]
    color = get_retention_color(retention)
    console.print(Panel(
        f"Cards: [bold]{summary['total_cards']}[/bold]  |  "
        f"Due now: [bold]{summary['due_now']}[/bold]  |  "
        f"Next session: [bold]{summary['recommended_session_size']}[/bold]",
        title="Progress", border_style="blue",
    ))
    console.print(
        f"\n  Retention: [bold]{retention}%[/bold] over {summary['reviews_logged']} reviews "
        f"[{color}]{get_retention_label(retention)}[/{color}]\n"
    )
    table = Table(title="Difficulty Breakdown")
    table.add_column("Level")
    table.add_column("Cards", justify="right")
    for level, count in summary["difficulty"].items():
        table.add_row(level, str(count))
    console.print(table)


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    db_path = settings.db_path
    init_db(db_path)
    logger.debug("Using database %s", db_path)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="review").strip().lower()
        try:
            if choice == "review":
                cmd_review(db_path, settings)
            elif choice == "add":
                cmd_add(db_path)
            elif choice == "list":
                cmd_list(db_path)
            elif choice == "stats":
                cmd_stats(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you at your next review![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except CardNotFoundError as e:
            console.print(f"[red]Unknown card: {e.args[0]}[/red]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
