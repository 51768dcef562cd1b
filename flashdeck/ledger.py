"""
Record of cards already scored in the current session
"""

import logging
from typing import Set, Tuple

logger = logging.getLogger(__name__)


class SubmissionLedger:
    """
    Set of (topic_id, card_index) pairs scored this session

    The scheduling backend does not deduplicate scores, so the session checks
    here before sending one.
    """

    def __init__(self):
        self._scored: Set[Tuple[str, int]] = set()

    def has_scored(self, topic_id: str, card_index: int) -> bool:
        return (topic_id, card_index) in self._scored

    def mark_scored(self, topic_id: str, card_index: int):
        self._scored.add((topic_id, card_index))
        logger.debug(f"Marked {topic_id}:{card_index} as scored")

    def clear(self):
        self._scored.clear()

    def __len__(self) -> int:
        return len(self._scored)

    def shift_positions(self, topic_id: str, removed_index: int):
        """Renumber a topic's entries after the card at removed_index was deleted"""
        shifted = set()
        for scored_topic, index in self._scored:
            if scored_topic != topic_id or index < removed_index:
                shifted.add((scored_topic, index))
            elif index > removed_index:
                shifted.add((scored_topic, index - 1))
        self._scored = shifted
