"""
Data models for study sessions

Cards, batches and the enums that describe where a session stands.
Cards are immutable; anything that changes a card returns a new one.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Dict, Any, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class CardType(str, Enum):
    QA_HINT = 'qa_hint'
    MULTIPLE_CHOICE = 'multiple_choice'


class Grade(IntEnum):
    """Recall grade, sent to the backend as base_score"""
    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3

    @property
    def label(self) -> str:
        return self.name.title()


class RevealStage(Enum):
    HIDDEN = 'hidden'
    HINT_SHOWN = 'hint_shown'
    ANSWER_SHOWN = 'answer_shown'


class Phase(Enum):
    LOADING = 'loading'
    PRESENTING = 'presenting'
    SUBMITTING = 'submitting'
    REFILLING = 'refilling'
    COMPLETE = 'complete'
    ERRORED = 'errored'


class StudyMode(str, Enum):
    REVIEW = 'review'
    PRACTICE = 'practice'


@dataclass(frozen=True)
class QAHintData:
    question: str
    answer: str
    hint: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QAHintData':
        return cls(
            question=data.get('question', ''),
            answer=data.get('answer', ''),
            hint=data.get('hint') or ''
        )


@dataclass(frozen=True)
class MultipleChoiceData:
    question: str
    choices: Tuple[str, ...]
    correct_index: int
    explanation: str = ''

    def __post_init__(self):
        if not self.choices:
            raise ValueError("multiple choice card needs at least one choice")
        if not 0 <= self.correct_index < len(self.choices):
            raise ValueError(
                f"correct_index {self.correct_index} out of range for {len(self.choices)} choices"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MultipleChoiceData':
        return cls(
            question=data.get('question', ''),
            choices=tuple(data.get('choices') or ()),
            correct_index=int(data.get('correct_index', 0)),
            explanation=data.get('explanation') or ''
        )

    @property
    def correct_choice(self) -> str:
        return self.choices[self.correct_index]


CardData = Union[QAHintData, MultipleChoiceData]


@dataclass(frozen=True)
class Card:
    """
    One study card as served by a review or practice batch

    Cards are scored by (topic_id, card_index), not by card_id: the backend
    tracks scheduling per position within a topic.
    """
    topic_id: str
    card_index: int
    card_type: CardType
    card_data: CardData
    intrinsic_weight: float = 1.0
    card_id: Optional[str] = None

    @property
    def key(self) -> Tuple[str, int]:
        return (self.topic_id, self.card_index)

    @property
    def question(self) -> str:
        return self.card_data.question

    @property
    def is_multiple_choice(self) -> bool:
        return self.card_type is CardType.MULTIPLE_CHOICE

    @property
    def hint(self) -> str:
        if isinstance(self.card_data, QAHintData):
            return self.card_data.hint
        return ''

    @classmethod
    def from_api(cls, item: Dict[str, Any], topic_id: Optional[str] = None,
                 card_index: Optional[int] = None) -> 'Card':
        """
        Build a card from a backend payload

        Args:
            item: Review/practice item, or a card embedded in a topic
            topic_id: Owning topic when the payload does not carry it
            card_index: Position when the payload does not carry it

        Raises:
            ValueError: If the card type is unknown or the data is inconsistent
        """
        try:
            card_type = CardType(item.get('card_type'))
        except ValueError:
            raise ValueError(f"Unknown card type: {item.get('card_type')!r}") from None

        raw_data = item.get('card_data')
        if raw_data is None:
            # Legacy flat cards carry their fields at the top level
            raw_data = item

        if card_type is CardType.MULTIPLE_CHOICE:
            card_data: CardData = MultipleChoiceData.from_dict(raw_data)
        else:
            card_data = QAHintData.from_dict(raw_data)

        resolved_topic = item.get('topic_id', topic_id)
        resolved_index = item.get('card_index', card_index)
        if resolved_topic is None or resolved_index is None:
            raise ValueError("Card payload has no topic_id/card_index")

        card_id = item.get('id')
        return cls(
            topic_id=str(resolved_topic),
            card_index=int(resolved_index),
            card_type=card_type,
            card_data=card_data,
            intrinsic_weight=float(item.get('intrinsic_weight', 1.0)),
            card_id=str(card_id) if card_id is not None else None
        )

    def with_content(self, other: 'Card') -> 'Card':
        """Return this card's identity carrying another card's content"""
        return replace(
            self,
            card_type=other.card_type,
            card_data=other.card_data,
            intrinsic_weight=other.intrinsic_weight
        )


@dataclass(frozen=True)
class SessionBatch:
    """
    One page of cards from a review or practice source

    total_remaining counts the cards in this batch plus those still due after
    it. It is a hint, None when the source does not report it.
    """
    cards: Tuple[Card, ...] = field(default_factory=tuple)
    total_remaining: Optional[int] = None

    def __len__(self) -> int:
        return len(self.cards)

    @property
    def is_empty(self) -> bool:
        return not self.cards

    @classmethod
    def from_api(cls, payload: Dict[str, Any], count_key: Optional[str] = 'total_due') -> 'SessionBatch':
        cards = [Card.from_api(item) for item in payload.get('cards') or []]
        total = payload.get(count_key) if count_key else None
        return cls(cards=tuple(cards), total_remaining=int(total) if total is not None else None)


@dataclass(frozen=True)
class ScoreResult:
    topic_id: str
    card_index: int
    next_due_at: Optional[datetime] = None
    new_stability: Optional[float] = None
    new_difficulty: Optional[float] = None
    message: str = ''

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'ScoreResult':
        return cls(
            topic_id=str(payload.get('topic_id', '')),
            card_index=int(payload.get('card_index', 0)),
            next_due_at=parse_timestamp(payload.get('next_review')),
            new_stability=payload.get('new_stability'),
            new_difficulty=payload.get('new_difficulty'),
            message=payload.get('message', '')
        )


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the backend, accepting a trailing Z"""
    if not value:
        return None
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Unparseable timestamp from backend: {value!r}")
        return None


def cards_from_topic(topic: Dict[str, Any]) -> List[Card]:
    """Build cards for every entry embedded in a topic payload"""
    topic_id = str(topic.get('id'))
    return [
        Card.from_api(item, topic_id=topic_id, card_index=index)
        for index, item in enumerate(topic.get('cards') or [])
    ]
