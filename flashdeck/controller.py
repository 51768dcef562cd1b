"""
Review and practice session controller

Turns batches of cards from a source into a one-card-at-a-time session:
reveal stages, answer gating, scoring, automatic refill when a batch runs
out, and in-place replacement or removal of the card on screen.

All state changes happen on the calling thread. Network calls are the only
points where the session waits; a response that comes back after the session
was disposed or restarted is dropped.
"""

import logging
from typing import Callable, Optional, Tuple

from flashdeck.batch_cache import BatchCache
from flashdeck.exceptions import FlashDeckError, InvalidTransitionError
from flashdeck.ledger import SubmissionLedger
from flashdeck.models import (
    Card,
    Grade,
    MultipleChoiceData,
    Phase,
    RevealStage,
    ScoreResult,
    SessionBatch,
    StudyMode,
)
from flashdeck.shuffler import shuffle_choices
from flashdeck.sources import CardSource

logger = logging.getLogger(__name__)

PhaseListener = Callable[[Phase, Phase], None]

_LOAD = 'load'
_REFILL = 'refill'


class SessionController:
    """
    State machine for one study session over one deck

    Phases:
        LOADING -> PRESENTING | COMPLETE | ERRORED
        PRESENTING -> SUBMITTING (review) -> PRESENTING | REFILLING
        REFILLING -> PRESENTING | COMPLETE | ERRORED
        ERRORED -> LOADING | REFILLING (via retry)
        any -> LOADING (via restart)
    """

    def __init__(
        self,
        deck_id: str,
        source: CardSource,
        mode: StudyMode = StudyMode.REVIEW,
        shuffle: Callable[[Card], Card] = shuffle_choices,
        on_phase_change: Optional[PhaseListener] = None
    ):
        """
        Args:
            deck_id: Deck the session studies
            source: Supplies batches (and accepts scores in review mode)
            mode: Review (graded, scheduled) or practice (ungraded)
            shuffle: Applied to every card entering the batch
            on_phase_change: Called with (old, new) on every transition
        """
        self.deck_id = deck_id
        self.source = source
        self.mode = StudyMode(mode)
        self.on_phase_change = on_phase_change
        self._shuffle = shuffle

        self.cache = BatchCache()
        self.ledger = SubmissionLedger()
        self.phase = Phase.LOADING
        self.reveal_stage = RevealStage.HIDDEN
        self.selected_choice: Optional[int] = None
        self.scored_count = 0
        self.last_score: Optional[ScoreResult] = None

        # Fetch/reconciliation failure and submission failure, shown separately
        self.error: Optional[str] = None
        self.submit_error: Optional[str] = None

        self._failed_operation: Optional[str] = None
        self._scored_before_batch = 0
        self._generation = 0
        self._disposed = False

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def current_card(self) -> Optional[Card]:
        return self.cache.current()

    @property
    def cursor(self) -> int:
        return self.cache.cursor

    @property
    def is_complete(self) -> bool:
        return self.phase is Phase.COMPLETE

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def progress(self) -> Tuple[int, Optional[int]]:
        """(cards scored so far, cards due this session if the source reports it)"""
        total = self.cache.total_remaining
        if total is None:
            return self.scored_count, None
        return self.scored_count, max(self._scored_before_batch + total, self.scored_count)

    @property
    def can_reveal_hint(self) -> bool:
        card = self.current_card
        return (
            self.phase is Phase.PRESENTING
            and card is not None
            and bool(card.hint)
            and self.reveal_stage is RevealStage.HIDDEN
        )

    @property
    def can_reveal_answer(self) -> bool:
        card = self.current_card
        if self.phase is not Phase.PRESENTING or card is None:
            return False
        if self.reveal_stage is RevealStage.ANSWER_SHOWN:
            return False
        return not (card.is_multiple_choice and self.selected_choice is None)

    @property
    def can_submit(self) -> bool:
        return (
            self.phase is Phase.PRESENTING
            and self.current_card is not None
            and self.reveal_stage is RevealStage.ANSWER_SHOWN
        )

    @property
    def can_edit(self) -> bool:
        return not self._disposed and self.phase is Phase.PRESENTING and self.current_card is not None

    @property
    def answered_correctly(self) -> Optional[bool]:
        """Whether the selected choice was right, once a multiple-choice answer is shown"""
        card = self.current_card
        if card is None or self.reveal_stage is not RevealStage.ANSWER_SHOWN:
            return None
        if not isinstance(card.card_data, MultipleChoiceData):
            return None
        return self.selected_choice == card.card_data.correct_index

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Fetch the first batch"""
        self._ensure_active()
        if self.phase is not Phase.LOADING:
            raise InvalidTransitionError(f"Session already started (phase={self.phase.value})")
        logger.info(f"Starting {self.mode.value} session for deck {self.deck_id}")
        self._fetch(_LOAD)

    def restart(self):
        """Throw away all session progress and load a fresh first batch"""
        self._ensure_active()
        self._generation += 1
        self.ledger.clear()
        self.cache.clear()
        self.scored_count = 0
        self._scored_before_batch = 0
        self.last_score = None
        self._failed_operation = None
        self._reset_card_state()
        logger.info(f"Restarting {self.mode.value} session for deck {self.deck_id}")
        self._set_phase(Phase.LOADING)
        self._fetch(_LOAD)

    def retry(self) -> bool:
        """
        Re-attempt the fetch that put the session into ERRORED

        Returns:
            False if the session is not in ERRORED
        """
        self._ensure_active()
        if self.phase is not Phase.ERRORED:
            return False
        if self._failed_operation == _REFILL:
            self._refill()
        else:
            self._set_phase(Phase.LOADING)
            self._fetch(_LOAD)
        return True

    def dispose(self):
        """Detach the session; late responses are dropped, further calls rejected"""
        if self._disposed:
            return
        self._disposed = True
        self._generation += 1
        logger.debug(f"Disposed session for deck {self.deck_id}")

    # ------------------------------------------------------------------
    # User actions on the presented card
    # ------------------------------------------------------------------

    def reveal_hint(self) -> bool:
        self._ensure_active()
        if not self.can_reveal_hint:
            return False
        self.reveal_stage = RevealStage.HINT_SHOWN
        return True

    def select_choice(self, index: int) -> bool:
        """
        Select an option of a multiple-choice card

        Returns:
            False if no multiple-choice card is awaiting an answer

        Raises:
            ValueError: If index is not one of the card's options
        """
        self._ensure_active()
        card = self.current_card
        if self.phase is not Phase.PRESENTING or card is None:
            return False
        if not isinstance(card.card_data, MultipleChoiceData):
            return False
        if self.reveal_stage is RevealStage.ANSWER_SHOWN:
            return False
        if not 0 <= index < len(card.card_data.choices):
            raise ValueError(f"Choice {index} out of range for {len(card.card_data.choices)} options")
        self.selected_choice = index
        return True

    def reveal_answer(self) -> bool:
        """Show the answer; refused for multiple-choice cards until a choice is made"""
        self._ensure_active()
        if not self.can_reveal_answer:
            return False
        self.reveal_stage = RevealStage.ANSWER_SHOWN
        return True

    def submit(self, grade: Grade) -> bool:
        """
        Score the current card and move on (review mode)

        A card already scored this session is not sent again; the session
        just advances. On failure the card stays presented with its answer
        shown and submit_error is set.

        Returns:
            True if a score was recorded by this call

        Raises:
            InvalidTransitionError: In practice mode, or with no answer shown
        """
        self._ensure_active()
        if self.mode is not StudyMode.REVIEW:
            raise InvalidTransitionError("Practice sessions advance with next_card()")
        if self.phase is Phase.SUBMITTING:
            logger.info("Ignoring submit while another submission is in flight")
            return False
        self._require_answer_shown()

        grade = Grade(grade)
        card = self.current_card
        self._set_phase(Phase.SUBMITTING)

        if self.ledger.has_scored(*card.key):
            logger.info(f"Card {card.topic_id}:{card.card_index} already scored this session, not resubmitting")
            self._advance()
            return False

        generation = self._generation
        try:
            result = self.source.submit_score(card.topic_id, card.card_index, grade)
        except FlashDeckError as e:
            if self._is_stale(generation):
                return False
            logger.warning(f"Failed to submit {grade.label} for {card.topic_id}:{card.card_index}: {e}")
            self.submit_error = str(e)
            self._set_phase(Phase.PRESENTING)
            return False

        if self._is_stale(generation):
            logger.info(f"Dropping score response for {card.topic_id}:{card.card_index} from a closed session")
            return False

        self.ledger.mark_scored(*card.key)
        self.scored_count += 1
        self.last_score = result
        self.submit_error = None
        logger.debug(f"Scored {card.topic_id}:{card.card_index} as {grade.label}")
        self._advance()
        return True

    def next_card(self) -> bool:
        """
        Count the current card as practiced and move on (practice mode)

        Raises:
            InvalidTransitionError: In review mode, or with no answer shown
        """
        self._ensure_active()
        if self.mode is not StudyMode.PRACTICE:
            raise InvalidTransitionError("Review sessions advance with submit()")
        self._require_answer_shown()
        self.scored_count += 1
        self._advance()
        return True

    # ------------------------------------------------------------------
    # Out-of-band changes to the presented card (see EditorBridge)
    # ------------------------------------------------------------------

    def request_token(self) -> int:
        """Token to hand back to is_stale() once a network call returns"""
        return self._generation

    def is_stale(self, token: int) -> bool:
        return self._is_stale(token)

    def replace_current_card(self, card: Card):
        """Show a new version of the current card from the start"""
        self._ensure_active()
        self._require_presenting()
        self.cache.replace_current(self._shuffle(card))
        self._reset_card_state()

    def remove_current_card(self):
        """
        Drop the current card from the batch

        The next card takes its place; if there is none the session refills
        exactly as if the batch had been worked through.
        """
        self._ensure_active()
        self._require_presenting()
        removed = self.cache.remove_current()
        self.cache.shift_positions(removed.topic_id, removed.card_index)
        self.ledger.shift_positions(removed.topic_id, removed.card_index)
        self._reset_card_state()
        if self.cache.current() is None:
            self._refill()

    def report_error(self, message: str):
        self.error = message

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_phase(self, phase: Phase):
        old = self.phase
        if old is phase:
            return
        self.phase = phase
        logger.debug(f"Session {self.deck_id}: {old.value} -> {phase.value}")
        if self.on_phase_change:
            self.on_phase_change(old, phase)

    def _reset_card_state(self):
        # Errors belong to the card they happened on
        self.reveal_stage = RevealStage.HIDDEN
        self.selected_choice = None
        self.error = None
        self.submit_error = None

    def _is_stale(self, generation: int) -> bool:
        return self._disposed or generation != self._generation

    def _ensure_active(self):
        if self._disposed:
            raise InvalidTransitionError("Session has been disposed")

    def _require_presenting(self):
        if self.phase is not Phase.PRESENTING or self.current_card is None:
            raise InvalidTransitionError(f"No card is being presented (phase={self.phase.value})")

    def _require_answer_shown(self):
        self._require_presenting()
        if self.reveal_stage is not RevealStage.ANSWER_SHOWN:
            raise InvalidTransitionError("The answer has not been shown yet")

    def _fetch(self, operation: str):
        generation = self._generation
        try:
            batch = self.source.fetch_batch(self.deck_id)
        except FlashDeckError as e:
            if self._is_stale(generation):
                return
            logger.warning(f"Failed to {operation} cards for deck {self.deck_id}: {e}")
            self.error = str(e)
            self._failed_operation = operation
            self._set_phase(Phase.ERRORED)
            return

        if self._is_stale(generation):
            logger.info(f"Dropping batch for deck {self.deck_id} from a closed session")
            return
        self._accept_batch(batch)

    def _accept_batch(self, batch: SessionBatch):
        self._reset_card_state()
        self._failed_operation = None
        if batch.is_empty:
            logger.info(f"No more cards for deck {self.deck_id}; {self.scored_count} done this session")
            self._set_phase(Phase.COMPLETE)
            return

        cards = tuple(self._shuffle(card) for card in batch.cards)
        self.cache.load(SessionBatch(cards=cards, total_remaining=batch.total_remaining))
        self._scored_before_batch = self.scored_count
        self._set_phase(Phase.PRESENTING)

    def _advance(self):
        has_next = self.cache.advance()
        self._reset_card_state()
        if has_next:
            self._set_phase(Phase.PRESENTING)
        else:
            self._refill()

    def _refill(self):
        self._set_phase(Phase.REFILLING)
        if self.mode is StudyMode.REVIEW and self._nothing_left_due():
            logger.info(f"Source reports nothing further due for deck {self.deck_id}")
            self._set_phase(Phase.COMPLETE)
            return
        self._fetch(_REFILL)

    def _nothing_left_due(self) -> bool:
        total = self.cache.total_remaining
        return total is not None and total - self.cache.batch_size <= 0
