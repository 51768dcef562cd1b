import random

import pytest

from flashdeck.batch_cache import BatchCache

from conftest import batch, qa_card


def loaded(*cards, total=None):
    cache = BatchCache()
    cache.load(batch(*cards, total=total))
    return cache


def test_empty_cache_has_no_current_card():
    cache = BatchCache()
    assert cache.current() is None
    assert cache.is_exhausted
    assert cache.advance() is False
    assert cache.cursor == 0


def test_advance_walks_the_batch_then_stops():
    a, b = qa_card(card_index=0), qa_card(card_index=1)
    cache = loaded(a, b, total=5)

    assert cache.current() == a
    assert cache.advance() is True
    assert cache.current() == b
    assert cache.advance() is False
    assert cache.current() is None
    assert cache.cursor == 2
    # Further advances do not push the cursor past the end
    assert cache.advance() is False
    assert cache.cursor == 2
    assert cache.total_remaining == 5
    assert cache.batch_size == 2


def test_replace_current_keeps_cursor():
    a, b = qa_card(card_index=0), qa_card(card_index=1)
    edited = qa_card(card_index=1, question='edited')
    cache = loaded(a, b)
    cache.advance()

    cache.replace_current(edited)

    assert cache.cursor == 1
    assert cache.current() == edited
    assert cache.cards == (a, edited)


def test_remove_current_promotes_next_card():
    a, b, c = (qa_card(topic_id='x', card_index=i) for i in range(3))
    cache = loaded(a, b, c)

    removed = cache.remove_current()

    assert removed == a
    assert cache.cursor == 0
    assert cache.current() == b
    assert len(cache) == 2
    assert cache.batch_size == 3


def test_remove_last_card_exhausts_batch():
    cache = loaded(qa_card())
    cache.remove_current()
    assert cache.current() is None
    assert cache.is_exhausted


def test_mutating_an_exhausted_cache_is_an_error():
    cache = loaded(qa_card())
    cache.advance()
    with pytest.raises(LookupError):
        cache.replace_current(qa_card())
    with pytest.raises(LookupError):
        cache.remove_current()


def test_shift_positions_renumbers_only_later_cards_of_the_topic():
    cache = loaded(
        qa_card(topic_id='x', card_index=2),
        qa_card(topic_id='x', card_index=5),
        qa_card(topic_id='y', card_index=5),
        qa_card(topic_id='x', card_index=1),
    )

    cache.shift_positions('x', 3)

    assert [card.key for card in cache.cards] == [('x', 2), ('x', 4), ('y', 5), ('x', 1)]


def test_cursor_stays_in_bounds_under_random_operations():
    rng = random.Random(1234)
    for _ in range(50):
        cache = loaded(*(qa_card(card_index=i) for i in range(rng.randint(0, 6))))
        for _ in range(20):
            if rng.random() < 0.5:
                cache.advance()
            elif cache.current() is not None:
                cache.remove_current()
            assert 0 <= cache.cursor <= len(cache)
