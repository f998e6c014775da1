"""Tests for the hand indexers."""

from math import comb

import pytest

from hand_abstraction.abstraction.indexer import CombinationIndexer, PreflopIndexer
from hand_abstraction.game.cards import Card


def card(text):
    return Card.new(text).index


class TestPreflopIndexer:
    """Tests for the 169-hand indexer."""

    def test_size(self):
        indexer = PreflopIndexer()
        assert indexer.size(0) == 169
        assert len(set(indexer.get_all_hands())) == 169

    def test_known_positions(self):
        indexer = PreflopIndexer()
        assert indexer.hand_string(0) == "AA"
        assert indexer.hand_string(12) == "22"
        assert indexer.hand_string(13) == "AKs"
        assert indexer.hand_string(90) == "32s"
        assert indexer.hand_string(91) == "AKo"
        assert indexer.hand_string(168) == "32o"

    def test_index_hand(self):
        indexer = PreflopIndexer()
        assert indexer.index_hand((card("As"), card("Ah"))) == 0
        assert indexer.index_hand((card("Ks"), card("As"))) == 13
        assert indexer.index_hand((card("Ad"), card("Kc"))) == 91
        assert indexer.index_hand((card("2h"), card("3c"))) == 168

    def test_index_ignores_card_order(self):
        indexer = PreflopIndexer()
        assert indexer.index_hand((card("7h"), card("Td"))) == indexer.index_hand(
            (card("Td"), card("7h"))
        )

    def test_decoded_hands_index_back(self):
        indexer = PreflopIndexer()
        for index in range(indexer.size(0)):
            cards = indexer.get_hand(0, index)
            assert cards[0] != cards[1]
            assert indexer.index_hand(cards) == index

    def test_decoded_suitedness(self):
        indexer = PreflopIndexer()
        suited = indexer.get_hand(0, 13)
        offsuit = indexer.get_hand(0, 91)
        assert suited[0] & 3 == suited[1] & 3
        assert offsuit[0] & 3 != offsuit[1] & 3

    def test_out_of_range(self):
        indexer = PreflopIndexer()
        with pytest.raises(IndexError):
            indexer.get_hand(0, 169)
        with pytest.raises(ValueError):
            indexer.size(1)

    def test_duplicate_cards(self):
        with pytest.raises(ValueError):
            PreflopIndexer().index_hand((card("As"), card("As")))


class TestCombinationIndexer:
    """Tests for the dense combination indexer."""

    def test_sizes(self):
        assert CombinationIndexer(0).size() == 1326
        assert CombinationIndexer(3).size() == 1326 * comb(50, 3)
        assert CombinationIndexer(5).size() == 1326 * comb(50, 5)

    @pytest.mark.parametrize("index", [0, 1, 19_599, 19_600, 12_345_678, 1326 * 19_600 - 1])
    def test_flop_index_round_trip(self, index):
        indexer = CombinationIndexer(3)
        cards = indexer.get_hand(0, index)

        assert len(cards) == 5
        assert len(set(cards)) == 5
        assert all(0 <= c < 52 for c in cards)
        assert indexer.index_hand(cards) == index

    def test_index_ignores_card_order_within_groups(self):
        indexer = CombinationIndexer(3)
        a = indexer.index_hand([card("As"), card("Kd"), card("2c"), card("7h"), card("Ts")])
        b = indexer.index_hand([card("Kd"), card("As"), card("Ts"), card("2c"), card("7h")])
        assert a == b

    def test_hole_and_board_are_distinguished(self):
        indexer = CombinationIndexer(3)
        a = indexer.index_hand([card("As"), card("Kd"), card("2c"), card("7h"), card("Ts")])
        b = indexer.index_hand([card("2c"), card("7h"), card("As"), card("Kd"), card("Ts")])
        assert a != b

    def test_first_and_last(self):
        indexer = CombinationIndexer(0)
        assert indexer.get_hand(0, 0) == (0, 1)
        assert indexer.get_hand(0, 1325) == (50, 51)

    def test_out_of_range(self):
        indexer = CombinationIndexer(0)
        with pytest.raises(IndexError):
            indexer.get_hand(0, 1326)
        with pytest.raises(IndexError):
            indexer.get_hand(0, -1)

    def test_invalid_cards(self):
        indexer = CombinationIndexer(3)
        with pytest.raises(ValueError):
            indexer.index_hand([0, 1, 2, 3])
        with pytest.raises(ValueError):
            indexer.index_hand([0, 0, 2, 3, 4])

    def test_invalid_board_size(self):
        with pytest.raises(ValueError):
            CombinationIndexer(6)
