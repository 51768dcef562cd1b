import random
from dataclasses import replace

import pytest

from flashdeck.editor_bridge import EditorBridge
from flashdeck.exceptions import APIError, InvalidTransitionError
from flashdeck.models import Grade, Phase, RevealStage
from flashdeck.shuffler import shuffle_choices

from conftest import FakeSource, FakeStore, batch, mc_card, qa_card


def test_refresh_replaces_current_card_and_resets_reveal(make_controller):
    a = qa_card(card_index=0, question='old', hint='h')
    store = FakeStore(qa_card(card_index=0, question='new', answer='fresh'))
    controller = make_controller(FakeSource(batch(a, qa_card(card_index=1), total=2)))
    bridge = EditorBridge(controller, store)
    controller.reveal_hint()
    controller.reveal_answer()

    assert bridge.refresh_current() is True

    assert controller.current_card.question == 'new'
    assert controller.current_card.card_data.answer == 'fresh'
    assert controller.cursor == 0
    assert controller.reveal_stage is RevealStage.HIDDEN
    assert controller.phase is Phase.PRESENTING


def test_update_saves_then_reloads(make_controller):
    a = qa_card(card_index=0, question='old')
    store = FakeStore(a)
    controller = make_controller(FakeSource(batch(a, total=1)))
    bridge = EditorBridge(controller, store)

    assert bridge.update_current({'question': 'better'}) is True

    assert store.calls[0] == ('update', 't1', 0, {'question': 'better'})
    assert store.calls[1] == ('fetch', 't1', 0)
    assert controller.current_card.question == 'better'


def test_update_rejects_unknown_fields(make_controller):
    a = qa_card()
    controller = make_controller(FakeSource(batch(a, total=1)))
    bridge = EditorBridge(controller, FakeStore(a))
    with pytest.raises(ValueError):
        bridge.update_current({'card_type': 'multiple_choice'})
    with pytest.raises(ValueError):
        bridge.update_current({})


def test_edited_multiple_choice_card_is_reshuffled_alone(make_controller):
    a = mc_card(card_index=0, choices=('w', 'x', 'y', 'z'), correct_index=0)
    b = mc_card(card_index=1, choices=('p', 'q', 'r', 's'), correct_index=3)
    reshuffled = []

    def tracking_shuffle(card):
        reshuffled.append(card.key)
        return shuffle_choices(card, random.Random(5))

    edited = mc_card(card_index=0, choices=('w', 'x', 'y', 'NEW'), correct_index=3)
    controller = make_controller(FakeSource(batch(a, b, total=2)), shuffle=tracking_shuffle)
    bridge = EditorBridge(controller, FakeStore(edited))
    other_before = controller.cache.cards[1]
    reshuffled.clear()

    bridge.refresh_current()

    assert reshuffled == [('t1', 0)]
    data = controller.current_card.card_data
    assert data.choices[data.correct_index] == 'NEW'
    assert controller.cache.cards[1] is other_before


def test_failed_refresh_leaves_card_untouched(make_controller):
    a = qa_card(question='original')
    store = FakeStore(qa_card(question='changed'))
    store.fail_next = APIError("nope", status_code=500)
    controller = make_controller(FakeSource(batch(a, total=1)))
    controller.reveal_answer()
    bridge = EditorBridge(controller, store)

    assert bridge.refresh_current() is False

    assert controller.current_card == a
    assert controller.reveal_stage is RevealStage.ANSWER_SHOWN
    assert controller.phase is Phase.PRESENTING
    assert "nope" in controller.error


def test_failed_update_does_not_refresh(make_controller):
    a = qa_card()
    store = FakeStore(a)
    store.fail_next = APIError("conflict", status_code=409)
    controller = make_controller(FakeSource(batch(a, total=1)))
    bridge = EditorBridge(controller, store)

    assert bridge.update_current({'answer': 'B'}) is False
    assert [call[0] for call in store.calls] == ['update']
    assert controller.current_card == a
    assert "conflict" in controller.error


def test_delete_moves_to_next_card_without_moving_cursor(make_controller):
    a, b = qa_card(topic_id='x', card_index=0), qa_card(topic_id='y', card_index=0)
    store = FakeStore(a, b)
    controller = make_controller(FakeSource(batch(a, b, total=2)))
    controller.reveal_answer()
    bridge = EditorBridge(controller, store)

    assert bridge.delete_current() is True

    assert controller.cursor == 0
    assert controller.current_card == b
    assert controller.reveal_stage is RevealStage.HIDDEN
    assert controller.phase is Phase.PRESENTING
    assert controller.scored_count == 0


def test_deleting_last_card_refills_then_completes(make_controller, recorder):
    a = qa_card()
    store = FakeStore(a)
    source = FakeSource(batch(a), batch())
    controller = make_controller(source)
    bridge = EditorBridge(controller, store)

    assert bridge.delete_current() is True

    assert recorder.phases[-3:] == [Phase.PRESENTING, Phase.REFILLING, Phase.COMPLETE]
    assert controller.scored_count == 0
    assert source.score_calls == []


def test_deleting_last_card_with_more_due_fetches_next_batch(make_controller):
    a, b = qa_card(card_index=0), qa_card(topic_id='t2', card_index=0)
    source = FakeSource(batch(a, total=2), batch(b, total=1))
    controller = make_controller(source)
    bridge = EditorBridge(controller, FakeStore(a))

    bridge.delete_current()

    assert controller.phase is Phase.PRESENTING
    assert controller.current_card == b


def test_delete_renumbers_later_cards_of_the_same_topic(make_controller):
    cards = [qa_card(card_index=i) for i in range(3)]
    source = FakeSource(batch(*cards, total=3))
    controller = make_controller(source)
    bridge = EditorBridge(controller, FakeStore(*cards))

    bridge.delete_current()

    assert [card.key for card in controller.cache.cards] == [('t1', 0), ('t1', 1)]
    controller.reveal_answer()
    controller.submit(Grade.GOOD)
    assert source.score_calls == [('t1', 0, Grade.GOOD)]


def test_failed_delete_keeps_card(make_controller):
    a = qa_card()
    store = FakeStore(a)
    store.fail_next = APIError("forbidden", status_code=403)
    controller = make_controller(FakeSource(batch(a, total=1)))
    bridge = EditorBridge(controller, store)

    assert bridge.delete_current() is False
    assert controller.current_card == a
    assert controller.phase is Phase.PRESENTING
    assert "forbidden" in controller.error


def test_editing_requires_a_presented_card(make_controller):
    controller = make_controller(FakeSource(batch()))
    bridge = EditorBridge(controller, FakeStore())
    assert controller.phase is Phase.COMPLETE
    with pytest.raises(InvalidTransitionError):
        bridge.refresh_current()
    with pytest.raises(InvalidTransitionError):
        bridge.delete_current()


def test_edit_result_after_dispose_is_dropped(make_controller):
    a = qa_card(question='original')
    store = FakeStore(qa_card(question='changed'))
    controller = make_controller(FakeSource(batch(a, total=1)))
    bridge = EditorBridge(controller, store)

    original_fetch = store.fetch_card

    def fetch_then_close(topic_id, card_index):
        card = original_fetch(topic_id, card_index)
        controller.dispose()
        return card

    store.fetch_card = fetch_then_close

    assert bridge.refresh_current() is False
    assert controller.current_card == a


def test_failed_delete_error_does_not_follow_the_next_card(make_controller):
    a, b = qa_card(card_index=0), qa_card(card_index=1)
    store = FakeStore(a, b)
    store.fail_next = APIError("boom")
    controller = make_controller(FakeSource(batch(a, b, total=2)))
    bridge = EditorBridge(controller, store)

    assert bridge.delete_current() is False
    assert "boom" in controller.error

    controller.reveal_answer()
    assert controller.submit(Grade.GOOD) is True

    assert controller.current_card == b
    assert controller.error is None


def test_failed_submit_error_is_dropped_with_the_deleted_card(make_controller):
    a, b = qa_card(card_index=0), qa_card(card_index=1, question='B?')
    source = FakeSource(batch(a, b, total=2))
    source.score_failures = [APIError("server down", status_code=503)]
    controller = make_controller(source)
    bridge = EditorBridge(controller, FakeStore(a, b))

    controller.reveal_answer()
    assert controller.submit(Grade.GOOD) is False
    assert controller.submit_error == "server down"

    assert bridge.delete_current() is True

    # b moved into position 0 of the same topic
    assert controller.current_card.key == ('t1', 0)
    assert controller.current_card.question == 'B?'
    assert controller.submit_error is None
    assert controller.error is None


def test_load_current_returns_stored_choice_order(make_controller):
    stored = mc_card(choices=('a', 'b', 'c', 'd'), correct_index=1)

    def reverse_choices(card):
        data = card.card_data
        flipped = replace(data, choices=data.choices[::-1], correct_index=len(data.choices) - 1 - data.correct_index)
        return replace(card, card_data=flipped)

    controller = make_controller(FakeSource(batch(stored, total=1)), shuffle=reverse_choices)
    bridge = EditorBridge(controller, FakeStore(stored))
    assert controller.current_card.card_data.choices == ('d', 'c', 'b', 'a')

    loaded = bridge.load_current()

    assert loaded.key == stored.key
    assert loaded.card_data.choices == ('a', 'b', 'c', 'd')
    assert loaded.card_data.correct_index == 1
    # the presented card keeps its shuffled order
    assert controller.current_card.card_data.choices == ('d', 'c', 'b', 'a')
