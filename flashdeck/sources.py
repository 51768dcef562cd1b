"""
Card sources and card store used by study sessions

These adapt FlashDeckAPIClient responses into models. The controller only
depends on the method names here, so tests substitute in-memory versions.
"""

import logging
from typing import Any, Dict

from flashdeck.client import FlashDeckAPIClient
from flashdeck.exceptions import APIError
from flashdeck.models import Card, Grade, ScoreResult, SessionBatch, cards_from_topic

logger = logging.getLogger(__name__)


class CardSource:
    """Supplies batches of cards for one deck"""

    def fetch_batch(self, deck_id: str) -> SessionBatch:
        raise NotImplementedError

    def submit_score(self, topic_id: str, card_index: int, grade: Grade) -> ScoreResult:
        raise NotImplementedError


class DueCardSource(CardSource):
    """Review mode: cards whose schedule has come due, ordered by the backend"""

    def __init__(self, client: FlashDeckAPIClient):
        self.client = client

    def fetch_batch(self, deck_id: str) -> SessionBatch:
        batch = _parse(SessionBatch.from_api, self.client.get_deck_review_cards(deck_id))
        logger.info(f"Fetched {len(batch)} due cards for deck {deck_id} (total_due={batch.total_remaining})")
        return batch

    def submit_score(self, topic_id: str, card_index: int, grade: Grade) -> ScoreResult:
        payload = self.client.submit_card_review(topic_id, card_index, int(grade))
        return _parse(ScoreResult.from_api, payload or {})


class PracticeCardSource(CardSource):
    """Practice mode: any subset of the deck, no scheduling"""

    def __init__(self, client: FlashDeckAPIClient):
        self.client = client

    def fetch_batch(self, deck_id: str) -> SessionBatch:
        payload = self.client.get_deck_practice_cards(deck_id)
        batch = _parse(lambda p: SessionBatch.from_api(p, count_key=None), payload)
        logger.info(f"Fetched {len(batch)} practice cards for deck {deck_id}")
        return batch


class CardStore:
    """Read, update and delete single cards by (topic_id, card_index)"""

    def __init__(self, client: FlashDeckAPIClient):
        self.client = client

    def fetch_card(self, topic_id: str, card_index: int) -> Card:
        """
        Fetch the authoritative content of one card

        Raises:
            APIError: If the request fails or the topic no longer has that card
        """
        topic = self.client.get_topic(topic_id)
        cards = _parse(cards_from_topic, topic)
        if not 0 <= card_index < len(cards):
            raise APIError(f"Card {card_index} not found in topic {topic_id}", status_code=404)
        return cards[card_index]

    def update_card(self, topic_id: str, card_index: int, changes: Dict[str, Any]):
        self.client.update_topic_card(topic_id, card_index, changes)
        logger.info(f"Updated card {topic_id}:{card_index} ({', '.join(sorted(changes))})")

    def delete_card(self, topic_id: str, card_index: int):
        self.client.delete_topic_card(topic_id, card_index)
        logger.info(f"Deleted card {topic_id}:{card_index}")


def _parse(parser, payload):
    """Run a model parser, reporting malformed payloads as API errors"""
    try:
        return parser(payload)
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        logger.error(f"Malformed response from backend: {e}")
        raise APIError(f"Malformed response from backend: {e}") from e
