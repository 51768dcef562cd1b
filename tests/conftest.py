"""Shared fakes and card factories for the session tests"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from flashdeck.controller import SessionController
from flashdeck.exceptions import APIError
from flashdeck.models import (
    Card,
    CardType,
    MultipleChoiceData,
    QAHintData,
    ScoreResult,
    SessionBatch,
    StudyMode,
)
from flashdeck.sources import CardSource, CardStore


def qa_card(topic_id: str = 't1', card_index: int = 0, question: str = 'Q?',
            answer: str = 'A', hint: str = '') -> Card:
    return Card(
        topic_id=topic_id,
        card_index=card_index,
        card_type=CardType.QA_HINT,
        card_data=QAHintData(question=question, answer=answer, hint=hint)
    )


def mc_card(topic_id: str = 't1', card_index: int = 0, choices=('a', 'b', 'c', 'd'),
            correct_index: int = 0, question: str = 'Pick one', explanation: str = '') -> Card:
    return Card(
        topic_id=topic_id,
        card_index=card_index,
        card_type=CardType.MULTIPLE_CHOICE,
        card_data=MultipleChoiceData(
            question=question,
            choices=tuple(choices),
            correct_index=correct_index,
            explanation=explanation
        )
    )


def batch(*cards: Card, total: Optional[int] = None) -> SessionBatch:
    return SessionBatch(cards=tuple(cards), total_remaining=total)


class FakeSource(CardSource):
    """
    In-memory card source

    Each fetch pops the next scripted item: a SessionBatch is returned, an
    exception is raised. Once the script runs out every fetch is empty.
    """

    def __init__(self, *batches):
        self.batches: List[Any] = list(batches)
        self.fetch_calls = 0
        self.score_calls: List[tuple] = []
        self.score_failures: List[Optional[Exception]] = []
        self.on_fetch = None
        self.on_submit = None

    def fetch_batch(self, deck_id: str) -> SessionBatch:
        self.fetch_calls += 1
        if self.on_fetch:
            self.on_fetch()
        if not self.batches:
            return SessionBatch()
        item = self.batches.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def submit_score(self, topic_id, card_index, grade) -> ScoreResult:
        self.score_calls.append((topic_id, card_index, grade))
        if self.on_submit:
            self.on_submit()
        if self.score_failures:
            failure = self.score_failures.pop(0)
            if failure is not None:
                raise failure
        return ScoreResult(
            topic_id=topic_id,
            card_index=card_index,
            next_due_at=datetime(2030, 1, 1, tzinfo=timezone.utc)
        )


class FakeStore(CardStore):
    """In-memory card store keyed by (topic_id, card_index)"""

    def __init__(self, *cards: Card):
        self.cards: Dict[tuple, Card] = {card.key: card for card in cards}
        self.fail_next: Optional[Exception] = None
        self.calls: List[tuple] = []

    def _maybe_fail(self):
        if self.fail_next is not None:
            failure, self.fail_next = self.fail_next, None
            raise failure

    def fetch_card(self, topic_id, card_index) -> Card:
        self.calls.append(('fetch', topic_id, card_index))
        self._maybe_fail()
        try:
            return self.cards[(topic_id, card_index)]
        except KeyError:
            raise APIError("Card not found", status_code=404) from None

    def update_card(self, topic_id, card_index, changes):
        self.calls.append(('update', topic_id, card_index, dict(changes)))
        self._maybe_fail()
        card = self.cards[(topic_id, card_index)]
        fields = {k: v for k, v in changes.items() if k != 'intrinsic_weight'}
        if 'choices' in fields:
            fields['choices'] = tuple(fields['choices'])
        new_data = replace(card.card_data, **fields)
        weight = changes.get('intrinsic_weight', card.intrinsic_weight)
        self.cards[card.key] = Card(card.topic_id, card.card_index, card.card_type, new_data, weight)

    def delete_card(self, topic_id, card_index):
        self.calls.append(('delete', topic_id, card_index))
        self._maybe_fail()
        del self.cards[(topic_id, card_index)]


def no_shuffle(card: Card) -> Card:
    return card


class PhaseRecorder:
    def __init__(self):
        self.transitions = []

    def __call__(self, old, new):
        self.transitions.append((old, new))

    @property
    def phases(self):
        return [new for _, new in self.transitions]


@pytest.fixture
def recorder():
    return PhaseRecorder()


@pytest.fixture
def make_controller(recorder):
    def factory(source, mode=StudyMode.REVIEW, shuffle=no_shuffle, start=True):
        controller = SessionController('deck-1', source, mode=mode, shuffle=shuffle, on_phase_change=recorder)
        if start:
            controller.start()
        return controller
    return factory
