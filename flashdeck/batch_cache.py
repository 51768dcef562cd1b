"""
In-memory holder for the batch of cards a session is working through
"""

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

from flashdeck.models import Card, SessionBatch

logger = logging.getLogger(__name__)


class BatchCache:
    """
    Current batch plus a cursor into it

    The cursor ranges over 0..len(cards); a cursor equal to len(cards) means
    the batch is exhausted and current() returns None.
    """

    def __init__(self):
        self._cards: List[Card] = []
        self._cursor = 0
        # Size and count hint of the batch as fetched, before any removals
        self.batch_size = 0
        self.total_remaining: Optional[int] = None

    def load(self, batch: SessionBatch):
        """Replace the cached batch and rewind the cursor"""
        self._cards = list(batch.cards)
        self._cursor = 0
        self.batch_size = len(batch.cards)
        self.total_remaining = batch.total_remaining
        logger.debug(f"Loaded batch of {self.batch_size} cards (total_remaining={self.total_remaining})")

    def clear(self):
        self.load(SessionBatch())

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def cards(self) -> Tuple[Card, ...]:
        return tuple(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    @property
    def is_exhausted(self) -> bool:
        return self._cursor >= len(self._cards)

    def current(self) -> Optional[Card]:
        if self.is_exhausted:
            return None
        return self._cards[self._cursor]

    def advance(self) -> bool:
        """
        Move the cursor forward by one

        Returns:
            True if a card remains at the new cursor position
        """
        if self._cursor < len(self._cards):
            self._cursor += 1
        return not self.is_exhausted

    def replace_current(self, card: Card):
        """
        Swap the card at the cursor for a new version of it

        Raises:
            LookupError: If the batch is exhausted
        """
        if self.is_exhausted:
            raise LookupError("No current card to replace")
        self._cards[self._cursor] = card

    def remove_current(self) -> Card:
        """
        Drop the card at the cursor without moving the cursor

        The card that followed it (if any) becomes current.

        Raises:
            LookupError: If the batch is exhausted
        """
        if self.is_exhausted:
            raise LookupError("No current card to remove")
        return self._cards.pop(self._cursor)

    def shift_positions(self, topic_id: str, removed_index: int):
        """
        Renumber cards of a topic after the card at removed_index was deleted

        The backend stores a topic's cards as a list, so every later card in
        that topic moves down one position.
        """
        self._cards = [
            replace(card, card_index=card.card_index - 1)
            if card.topic_id == topic_id and card.card_index > removed_index else card
            for card in self._cards
        ]
