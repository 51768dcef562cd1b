import random

from flashdeck.shuffler import shuffle_choices, shuffled_order

from conftest import mc_card, qa_card


def test_correct_option_survives_shuffle_for_many_seeds():
    card = mc_card(choices=('Paris', 'Rome', 'Madrid', 'Berlin', 'Lisbon'), correct_index=3)

    for seed in range(200):
        shuffled = shuffle_choices(card, random.Random(seed))
        data = shuffled.card_data
        assert data.choices[data.correct_index] == 'Berlin'
        assert sorted(data.choices) == sorted(card.card_data.choices)


def test_duplicate_option_text_tracks_the_original_position():
    # Both options read "same"; only the one originally at index 1 is correct
    card = mc_card(choices=('same', 'same', 'other'), correct_index=1)

    for seed in range(50):
        rng = random.Random(seed)
        order = shuffled_order(3, random.Random(seed))
        shuffled = shuffle_choices(card, rng)
        assert order[shuffled.card_data.correct_index] == 1


def test_input_card_is_not_mutated():
    card = mc_card(choices=('a', 'b', 'c', 'd'), correct_index=2)
    before = card.card_data

    shuffle_choices(card, random.Random(7))

    assert card.card_data is before
    assert card.card_data.choices == ('a', 'b', 'c', 'd')
    assert card.card_data.correct_index == 2


def test_qa_cards_pass_through_unchanged():
    card = qa_card(hint='think')
    assert shuffle_choices(card, random.Random(1)) is card


def test_identity_fields_are_preserved():
    card = mc_card(topic_id='topic-9', card_index=4, explanation='because')
    shuffled = shuffle_choices(card, random.Random(3))

    assert shuffled.key == ('topic-9', 4)
    assert shuffled.card_data.question == card.card_data.question
    assert shuffled.card_data.explanation == 'because'


def test_shuffled_order_is_a_permutation():
    for size in range(0, 8):
        order = shuffled_order(size, random.Random(size))
        assert sorted(order) == list(range(size))


def test_every_position_is_reachable():
    card = mc_card(choices=('a', 'b', 'c', 'd'), correct_index=0)
    rng = random.Random(42)
    positions = {shuffle_choices(card, rng).card_data.correct_index for _ in range(400)}
    assert positions == {0, 1, 2, 3}
