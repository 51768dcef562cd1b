"""
Multiple-choice option shuffling

Options are permuted by index so that duplicate option texts never confuse
which one is correct.
"""

import random
from dataclasses import replace
from typing import List, Optional

from flashdeck.models import Card, MultipleChoiceData


def shuffled_order(size: int, rng: Optional[random.Random] = None) -> List[int]:
    """Fisher-Yates permutation of range(size)"""
    rng = rng or random
    order = list(range(size))
    for i in range(size - 1, 0, -1):
        j = rng.randint(0, i)
        order[i], order[j] = order[j], order[i]
    return order


def shuffle_choices(card: Card, rng: Optional[random.Random] = None) -> Card:
    """
    Return a copy of a multiple-choice card with its options shuffled

    The correct index is recomputed from the permutation itself, so
    choices[correct_index] is always the option that was correct before.
    Question/answer cards are returned unchanged. The input is never mutated.

    Args:
        card: Card to shuffle
        rng: Random source (defaults to the module-level generator)
    """
    data = card.card_data
    if not isinstance(data, MultipleChoiceData):
        return card

    order = shuffled_order(len(data.choices), rng)
    shuffled = replace(
        data,
        choices=tuple(data.choices[i] for i in order),
        correct_index=order.index(data.correct_index)
    )
    return replace(card, card_data=shuffled)
