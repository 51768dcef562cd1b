"""
Card display for terminal output

Renders the presented card, progress and session summary with rich.
"""

import logging
from typing import Dict, Any, List, Optional

from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from flashdeck.controller import SessionController
from flashdeck.models import Card, MultipleChoiceData, QAHintData, RevealStage, StudyMode

logger = logging.getLogger(__name__)


class CardDisplay:
    """Renders the card a session is presenting"""

    def __init__(self, console: Console):
        self.console = console

    def display(self, controller: SessionController):
        """Display the current card at its current reveal stage"""
        card = controller.current_card
        if card is None:
            self.console.print("[yellow]No card available[/yellow]")
            return

        if controller.reveal_stage is RevealStage.ANSWER_SHOWN:
            self._render(card, self._back_parts(card, controller.selected_choice), side="BACK", color="green")
        else:
            parts = self._front_parts(card, controller.reveal_stage, controller.selected_choice)
            self._render(card, parts, side="FRONT", color="blue")

    def _render(self, card: Card, parts: List[Any], side: str, color: str):
        title = f"CARD - {side}"
        subtitle = f"topic {card.topic_id} #{card.card_index}"
        self.console.print(Panel(
            Group(*parts),
            title=title,
            subtitle=subtitle,
            border_style=color,
            padding=(1, 2)
        ))

    def _front_parts(self, card: Card, stage: RevealStage, selected: Optional[int]) -> List[Any]:
        parts: List[Any] = [Markdown(card.question)]
        data = card.card_data

        if isinstance(data, QAHintData) and data.hint and stage is RevealStage.HINT_SHOWN:
            parts.append(Text(""))
            parts.append(Panel(Markdown(data.hint), title="Hint", border_style="cyan"))

        if isinstance(data, MultipleChoiceData):
            parts.append(Text(""))
            for index, choice in enumerate(data.choices):
                marker = "●" if index == selected else "○"
                style = "bold" if index == selected else ""
                parts.append(Text(f"{marker} {index + 1}. {choice}", style=style))
        return parts

    def _back_parts(self, card: Card, selected: Optional[int]) -> List[Any]:
        parts: List[Any] = [Markdown(card.question), Text("")]
        data = card.card_data

        if isinstance(data, QAHintData):
            parts.append(Panel(Markdown(data.answer), title="Answer", border_style="green"))
            return parts

        for index, choice in enumerate(data.choices):
            if index == data.correct_index:
                parts.append(Text(f"✓ {index + 1}. {choice}", style="bold green"))
            elif index == selected:
                parts.append(Text(f"✗ {index + 1}. {choice}", style="bold red"))
            else:
                parts.append(Text(f"  {index + 1}. {choice}", style="dim"))

        if data.explanation:
            parts.append(Text(""))
            parts.append(Panel(Markdown(data.explanation), title="Explanation", border_style="cyan"))
        return parts


def display_progress(console: Console, controller: SessionController):
    """One-line progress summary"""
    done, total = controller.progress
    label = "Reviewed" if controller.mode is StudyMode.REVIEW else "Practiced"
    if total:
        console.print(f"[dim]{label}: {done}/{total}[/dim]")
    else:
        console.print(f"[dim]{label}: {done}[/dim]")


def display_summary(console: Console, controller: SessionController, deck_name: Optional[str] = None):
    """Display the end-of-session summary"""
    deck_label = deck_name or "this deck"
    count = controller.scored_count
    plural = '' if count == 1 else 's'

    if controller.mode is StudyMode.REVIEW:
        title = "Review Complete! 🎉"
        if count == 0:
            body = "No cards due for review in this deck."
        else:
            body = f"You've reviewed {count} card{plural} from {deck_label}."
    else:
        title = "Practice Complete! 🎉"
        if count == 0:
            body = "No cards available for practice in this deck."
        else:
            body = f"You've practiced {count} card{plural} from {deck_label}."

    console.print(Panel(body, title=title, border_style="green", padding=(1, 2)))


def display_deck_table(console: Console, decks: List[Dict[str, Any]]):
    """Display deck selection table"""
    table = Table(title="📚 Available Decks", show_header=True, header_style="bold cyan")

    table.add_column("#", style="cyan", width=4)
    table.add_column("ID", style="dim")
    table.add_column("Deck Name", style="green")
    table.add_column("Updated", style="magenta")

    for i, deck in enumerate(decks, 1):
        table.add_row(
            str(i),
            str(deck.get('id', '?')),
            deck.get('name', 'Unknown'),
            str(deck.get('updated_at') or deck.get('created_at') or '-')
        )

    console.print(table)


def show_help(console: Console, mode: StudyMode = StudyMode.REVIEW):
    """Display help with keyboard shortcuts"""
    if mode is StudyMode.REVIEW:
        advance_help = """[yellow]1[/yellow]        - Again (forgot)
  [yellow]2[/yellow]        - Hard (difficult)
  [yellow]3[/yellow]        - Good (normal)
  [yellow]4[/yellow]        - Easy (perfect)"""
    else:
        advance_help = "[yellow]Enter/n[/yellow]  - Next card"

    help_text = f"""
[bold cyan]Keyboard Shortcuts:[/bold cyan]

[bold]Before the answer:[/bold]
  [yellow]1-9[/yellow]      - Select a choice (multiple choice cards)
  [yellow]t[/yellow]        - Show hint
  [yellow]f[/yellow]        - Show answer

[bold]After the answer:[/bold]
  {advance_help}

[bold]Session Commands:[/bold]
  [yellow]e[/yellow]        - Edit current card
  [yellow]d[/yellow]        - Delete current card
  [yellow]s[/yellow]        - Show progress
  [yellow]r[/yellow]        - Retry after an error
  [yellow]h[/yellow]        - Show this help
  [yellow]q[/yellow]        - Quit session

[dim]Tip: pick a choice before showing the answer on multiple choice cards![/dim]
    """.strip()

    console.print(Panel(
        help_text,
        title="Help",
        border_style="cyan",
        padding=(1, 2)
    ))
