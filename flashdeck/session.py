"""
Interactive study session

Handles the terminal loop for review and practice sessions: reads single
commands and turns them into SessionController actions.
"""

import logging
from typing import Any, Dict, Optional

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt

from flashdeck.client import FlashDeckAPIClient
from flashdeck.controller import SessionController
from flashdeck.display import CardDisplay, display_progress, display_summary, show_help
from flashdeck.editor_bridge import EditorBridge
from flashdeck.exceptions import FlashDeckError
from flashdeck.models import Card, Grade, MultipleChoiceData, Phase, RevealStage, StudyMode
from flashdeck.sources import CardStore, DueCardSource, PracticeCardSource

logger = logging.getLogger(__name__)

CHOICE_SEPARATOR = '|'


class InteractiveStudySession:
    """Runs one review or practice session in the terminal"""

    def __init__(
        self,
        api_client: FlashDeckAPIClient,
        console: Console,
        deck_id: str,
        mode: StudyMode = StudyMode.REVIEW,
        prompt_session: Optional[PromptSession] = None
    ):
        """
        Initialize interactive session

        Args:
            api_client: API client instance
            console: Rich console instance
            deck_id: Deck to study
            mode: Review (graded) or practice (ungraded)
            prompt_session: Input session (a fresh PromptSession by default)
        """
        self.api = api_client
        self.console = console
        self.deck_id = deck_id
        self.mode = StudyMode(mode)
        self.prompt_session = prompt_session or PromptSession()
        self.display = CardDisplay(console)

        source = DueCardSource(api_client) if self.mode is StudyMode.REVIEW else PracticeCardSource(api_client)
        self.controller = SessionController(
            deck_id,
            source,
            mode=self.mode,
            on_phase_change=self._on_phase_change
        )
        self.editor = EditorBridge(self.controller, CardStore(api_client))

        self.running = True
        self.deck_name: Optional[str] = None

    def run(self):
        """Main interactive loop"""
        try:
            self._load_deck()
            self.console.print(f"\n🎯 Starting {self.mode.value} of [blue]{self.deck_name or self.deck_id}[/blue]...\n")
            self.controller.start()
            self._show_state()

            while self.running:
                try:
                    action = self._get_user_input()
                    self._handle_action(action)
                except KeyboardInterrupt:
                    self.console.print("\n[yellow]Use 'q' to quit[/yellow]")
                except Exception as e:
                    logger.error(f"Error in study loop: {e}")
                    self.console.print(f"[red]Error: {e}[/red]")

        except KeyboardInterrupt:
            self.console.print("\n[yellow]Session interrupted[/yellow]")
        finally:
            self._cleanup()

    def _load_deck(self):
        """Look up the deck name for headers and the summary"""
        try:
            deck = self.api.get_deck(self.deck_id)
        except FlashDeckError as e:
            logger.warning(f"Could not load deck {self.deck_id}: {e}")
            return
        self.deck_name = (deck or {}).get('name')

    def _get_user_input(self) -> str:
        """Get user input (single character or command)"""
        try:
            return self.prompt_session.prompt('> ').strip().lower()
        except (EOFError, KeyboardInterrupt):
            return 'q'

    def _on_phase_change(self, old: Phase, new: Phase):
        if new is Phase.REFILLING:
            self.console.print("[dim]Loading next batch of cards...[/dim]")

    def _handle_action(self, action: str):
        """Handle user action"""
        if action.isdigit():
            self._handle_number(int(action))
        elif action == 'f':
            self._reveal_answer()
        elif action == 't':
            self._reveal_hint()
        elif action in ['', 'n']:
            self._next_card()
        elif action == 'e':
            self._edit_card()
        elif action == 'd':
            self._delete_card()
        elif action == 's':
            display_progress(self.console, self.controller)
        elif action == 'r':
            self._retry()
        elif action == 'h' or action == '?':
            show_help(self.console, self.mode)
        elif action == 'q':
            self._quit()
        else:
            self.console.print(f"[yellow]Unknown command: '{action}'. Press 'h' for help[/yellow]")

    def _show_state(self):
        """Show whatever the session is waiting on"""
        phase = self.controller.phase

        if phase is Phase.PRESENTING:
            if self.controller.error:
                self.console.print(f"[red]{self.controller.error}[/red]")
            if self.controller.submit_error:
                self.console.print(f"[red]Failed to submit review: {self.controller.submit_error}[/red]")
            self.display.display(self.controller)
            self._show_card_actions()
        elif phase is Phase.ERRORED:
            self.console.print(f"[red]{self.controller.error or 'Something went wrong'}[/red]")
            self.console.print("[dim][r] Retry  [q] Quit[/dim]\n")
        elif self.controller.is_complete:
            display_summary(self.console, self.controller, self.deck_name)
            if Confirm.ask("Start again?", default=False, console=self.console):
                self.controller.restart()
                self._show_state()
            else:
                self.running = False

    def _show_card_actions(self):
        """Show available actions for the current reveal stage"""
        if self.controller.reveal_stage is not RevealStage.ANSWER_SHOWN:
            hint = "  [t] Hint" if self.controller.can_reveal_hint else ""
            pick = "[1-9] Pick  " if self.controller.current_card.is_multiple_choice else ""
            self.console.print(f"[dim]{pick}[f] Show answer{hint}  [e] Edit  [d] Delete  [h] Help  [q] Quit[/dim]\n")
        elif self.mode is StudyMode.REVIEW:
            self.console.print(
                "[dim]"
                "[red]1[/red] Again  "
                "[yellow]2[/yellow] Hard  "
                "[blue]3[/blue] Good  "
                "[green]4[/green] Easy  "
                "[white]|[/white]  "
                "[e] Edit  [d] Delete  [h] Help"
                "[/dim]\n"
            )
        else:
            self.console.print("[dim][Enter] Next  [e] Edit  [d] Delete  [h] Help  [q] Quit[/dim]\n")

    def _has_card(self) -> bool:
        if self.controller.phase is Phase.PRESENTING and self.controller.current_card is not None:
            return True
        self.console.print("[yellow]No card is being presented[/yellow]")
        return False

    def _handle_number(self, number: int):
        if not self._has_card():
            return

        if self.controller.reveal_stage is not RevealStage.ANSWER_SHOWN:
            if not self.controller.current_card.is_multiple_choice:
                self.console.print("[yellow]⚠️  Show the answer first (press 'f')[/yellow]")
                return
            try:
                self.controller.select_choice(number - 1)
            except ValueError:
                self.console.print(f"[yellow]No choice {number}[/yellow]")
                return
            self.display.display(self.controller)
            self._show_card_actions()
            return

        if self.mode is StudyMode.PRACTICE:
            self.console.print("[dim]Press Enter for the next card[/dim]")
            return
        if not 1 <= number <= len(Grade):
            self.console.print("[yellow]Grade with 1-4[/yellow]")
            return
        self._submit(Grade(number - 1))

    def _submit(self, grade: Grade):
        """Submit a grade and show the next card"""
        if self.controller.submit(grade):
            self.console.print(f"✅ Card answered: [bold]{grade.label}[/bold]\n")
        self._show_state()

    def _reveal_answer(self):
        if not self._has_card():
            return
        if self.controller.reveal_stage is RevealStage.ANSWER_SHOWN:
            self.console.print("[yellow]Answer is already shown[/yellow]")
            return
        if not self.controller.reveal_answer():
            self.console.print("[yellow]⚠️  Pick a choice first (1-9)[/yellow]")
            return
        correct = self.controller.answered_correctly
        if correct is True:
            self.console.print("[green]Correct![/green]")
        elif correct is False:
            self.console.print("[red]Not quite.[/red]")
        self.display.display(self.controller)
        self._show_card_actions()

    def _reveal_hint(self):
        if not self._has_card():
            return
        if not self.controller.reveal_hint():
            self.console.print("[dim]No hint available[/dim]")
            return
        self.display.display(self.controller)
        self._show_card_actions()

    def _next_card(self):
        if self.mode is not StudyMode.PRACTICE or not self.controller.can_submit:
            self.console.print("[dim]Type 'h' for help, 'f' to show the answer[/dim]")
            return
        self.controller.next_card()
        self._show_state()

    def _retry(self):
        if not self.controller.retry():
            self.console.print("[dim]Nothing to retry[/dim]")
            return
        self._show_state()

    def _edit_card(self):
        """Prompt for new card content and save it"""
        if not self._has_card():
            return
        try:
            stored = self.editor.load_current()
        except FlashDeckError as e:
            self.console.print(f"[red]Failed to load card for editing: {e}[/red]")
            return
        changes = self._prompt_changes(stored)
        if not changes:
            self.console.print("[dim]No changes[/dim]")
            return
        if self.editor.update_current(changes):
            self.console.print("✅ Card updated\n")
        else:
            self.console.print(f"[red]{self.controller.error}[/red]")
        self._show_state()

    def _prompt_changes(self, card: Card) -> Dict[str, Any]:
        data = card.card_data
        self.console.print(Panel("Press Enter to keep a value", title="Edit Card", border_style="purple"))

        changes: Dict[str, Any] = {}
        question = Prompt.ask("Question", default=data.question, console=self.console)
        if question != data.question:
            changes['question'] = question

        if isinstance(data, MultipleChoiceData):
            raw_choices = Prompt.ask(
                f"Choices (separated by '{CHOICE_SEPARATOR}')",
                default=CHOICE_SEPARATOR.join(data.choices),
                console=self.console
            )
            choices = [c.strip() for c in raw_choices.split(CHOICE_SEPARATOR) if c.strip()]
            correct = IntPrompt.ask(
                "Correct choice number",
                default=data.correct_index + 1,
                console=self.console
            ) - 1
            if not choices or not 0 <= correct < len(choices):
                self.console.print("[yellow]Correct choice must be one of the choices; edit discarded[/yellow]")
                return {}
            if tuple(choices) != data.choices or correct != data.correct_index:
                changes['choices'] = choices
                changes['correct_index'] = correct
            explanation = Prompt.ask("Explanation", default=data.explanation, console=self.console)
            if explanation != data.explanation:
                changes['explanation'] = explanation
        else:
            answer = Prompt.ask("Answer", default=data.answer, console=self.console)
            if answer != data.answer:
                changes['answer'] = answer
            hint = Prompt.ask("Hint", default=data.hint, console=self.console)
            if hint != data.hint:
                changes['hint'] = hint

        return changes

    def _delete_card(self):
        if not self._has_card():
            return
        if not Confirm.ask("Delete this card?", default=False, console=self.console):
            return
        if self.editor.delete_current():
            self.console.print("🗑️  Card deleted\n")
            self._show_state()
        else:
            self.console.print(f"[red]{self.controller.error}[/red]")

    def _quit(self):
        """Quit session"""
        if self.controller.scored_count:
            display_progress(self.console, self.controller)
        self.console.print("👋 Goodbye!")
        self.running = False

    def _cleanup(self):
        """Detach the controller so late responses are ignored"""
        self.controller.dispose()
