"""
Edits and deletions of the card currently on screen

Applies the backend change first and only then patches the session, so a
failed request leaves the presented card exactly as it was.
"""

import logging
from typing import Any, Dict

from flashdeck.controller import SessionController
from flashdeck.exceptions import FlashDeckError, InvalidTransitionError
from flashdeck.models import Card
from flashdeck.sources import CardStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({
    'question', 'answer', 'hint', 'choices', 'correct_index', 'explanation', 'intrinsic_weight'
})


class EditorBridge:
    """Keeps a running session in step with edits made to its current card"""

    def __init__(self, controller: SessionController, store: CardStore):
        self.controller = controller
        self.store = store

    def refresh_current(self) -> bool:
        """
        Reload the current card after it was edited elsewhere

        The fresh content is shuffled again and presented from the start.

        Returns:
            True if the session now shows the refreshed card
        """
        card = self._editable_card()
        token = self.controller.request_token()
        try:
            fresh = self.store.fetch_card(card.topic_id, card.card_index)
        except FlashDeckError as e:
            return self._fail(token, f"Failed to refresh card data: {e}")

        if not self._still_current(token, card):
            return False
        self.controller.replace_current_card(card.with_content(fresh))
        logger.info(f"Refreshed card {card.topic_id}:{card.card_index}")
        return True

    def load_current(self) -> Card:
        """
        Fetch the stored version of the current card for editing

        The presented card may have its choices shuffled; the stored one has
        them in the order the backend keeps.

        Raises:
            FlashDeckError: If the card cannot be fetched
        """
        card = self._editable_card()
        return card.with_content(self.store.fetch_card(card.topic_id, card.card_index))

    def update_current(self, changes: Dict[str, Any]) -> bool:
        """
        Save a partial update of the current card, then reload it

        Args:
            changes: Subset of EDITABLE_FIELDS with their new values

        Raises:
            ValueError: If changes is empty or names an unknown field
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")
        if not changes:
            raise ValueError("No changes to save")

        card = self._editable_card()
        token = self.controller.request_token()
        try:
            self.store.update_card(card.topic_id, card.card_index, changes)
        except FlashDeckError as e:
            return self._fail(token, f"Failed to update card: {e}")

        if not self._still_current(token, card):
            return False
        return self.refresh_current()

    def delete_current(self) -> bool:
        """
        Delete the current card and continue with the next one

        Returns:
            True if the card was deleted and removed from the session
        """
        card = self._editable_card()
        token = self.controller.request_token()
        try:
            self.store.delete_card(card.topic_id, card.card_index)
        except FlashDeckError as e:
            return self._fail(token, f"Failed to delete card: {e}")

        if not self._still_current(token, card):
            return False
        self.controller.remove_current_card()
        return True

    def _editable_card(self) -> Card:
        card = self.controller.current_card
        if card is None or not self.controller.can_edit:
            raise InvalidTransitionError("Cards can only be edited while one is being presented")
        return card

    def _still_current(self, token: int, card: Card) -> bool:
        if self.controller.is_stale(token):
            logger.info(f"Dropping edit result for {card.topic_id}:{card.card_index} from a closed session")
            return False
        current = self.controller.current_card
        return current is not None and current.key == card.key

    def _fail(self, token: int, message: str) -> bool:
        if self.controller.is_stale(token):
            return False
        logger.warning(message)
        self.controller.report_error(message)
        return False
