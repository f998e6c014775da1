"""Tests for the equity precomputation pipeline."""

import numpy as np
import pytest

from hand_abstraction.abstraction.equity_table import read_equity_table
from hand_abstraction.abstraction.indexer import CombinationIndexer, PreflopIndexer
from hand_abstraction.abstraction.precompute import (
    StreetStage,
    compute_stage_equities,
    compute_stage_histograms,
    decode_situation,
    default_stages,
    generate_equity_table,
    situation_equity,
    stage_for_street,
)
from hand_abstraction.game.cards import Card, Street
from hand_abstraction.shared.config import EquityConfig


class FakeOracle:
    """Deterministic oracle: equity encodes the hero's first card, and records its calls."""

    def __init__(self, seed):
        self.seed = seed
        self.calls = []

    def approx_equity(self, hand_ranges, board_mask, n_samples, std_error):
        self.calls.append((board_mask, n_samples, std_error))
        hero = hand_ranges[0].combos[0]
        return [hero[0].index / 100.0, 1.0 - hero[0].index / 100.0]

    def equity_histogram(self, hole_cards, board, n_bins):
        histogram = np.zeros(n_bins)
        histogram[hole_cards[1].index % n_bins] = 1.0
        return histogram


@pytest.fixture
def config():
    return EquityConfig(n_workers=1, preflop_std_error=0.002, postflop_std_error=0.02)


@pytest.fixture
def preflop_stage():
    return StreetStage(street=Street.PREFLOP, indexer=PreflopIndexer())


class TestSituations:
    """Tests for decoding indexed situations."""

    def test_decode_situation(self):
        hole, board = decode_situation([Card.new("As").index, Card.new("Kd").index, 0])

        assert hole == (Card.new("As"), Card.new("Kd"))
        assert board == (Card.new("2s"),)

    def test_decode_requires_hole_cards(self):
        with pytest.raises(ValueError):
            decode_situation([0])

    def test_situation_equity_builds_board_mask(self):
        oracle = FakeOracle(0)
        cards = [Card.new("As").index, Card.new("Kd").index, 0, 1, 2]

        situation_equity(oracle, cards, 500, 0.01)

        assert oracle.calls == [(0b111, 500, 0.01)]

    def test_opponent_is_random(self):
        ranges_seen = []

        class RecordingOracle(FakeOracle):
            def approx_equity(self, hand_ranges, board_mask, n_samples, std_error):
                ranges_seen.append([len(r) for r in hand_ranges])
                return super().approx_equity(hand_ranges, board_mask, n_samples, std_error)

        situation_equity(RecordingOracle(0), [48, 49], 10, 0.1)
        assert ranges_seen == [[1, 1326]]


class TestStages:
    """Tests for stage layout helpers."""

    def test_default_stages(self):
        stages = default_stages(["preflop", "flop"])

        assert [s.street for s in stages] == [Street.PREFLOP, Street.FLOP]
        assert isinstance(stages[0].indexer, PreflopIndexer)
        assert isinstance(stages[1].indexer, CombinationIndexer)
        assert stages[0].size() == 169

    def test_stage_for_street(self):
        stages = default_stages(["preflop", "turn"])

        assert stage_for_street("turn", stages) == 1
        assert stage_for_street(Street.RIVER, stages) is None


class TestComputeStage:
    """Tests for per-street computation."""

    def test_equities_in_index_order(self, preflop_stage, config):
        equities = compute_stage_equities(
            preflop_stage, config, FakeOracle, show_progress=False
        )

        assert equities.shape == (169,)
        for index in (0, 13, 91, 168):
            first_card = preflop_stage.indexer.get_hand(0, index)[0]
            assert equities[index] == pytest.approx(first_card / 100.0)

    def test_precision_depends_on_street(self, config):
        seen = []

        def factory(seed):
            oracle = FakeOracle(seed)
            seen.append(oracle)
            return oracle

        small_flop = StreetStage(street=Street.FLOP, indexer=_TinyIndexer())
        compute_stage_equities(small_flop, config, factory, show_progress=False)

        assert {call[2] for oracle in seen for call in oracle.calls} == {0.02}

    def test_histograms(self, preflop_stage, config):
        histograms = compute_stage_histograms(
            preflop_stage, config, FakeOracle, show_progress=False
        )

        assert histograms.shape == (169, config.histogram_bins)
        np.testing.assert_allclose(histograms.sum(axis=1), 1.0)


class _TinyIndexer:
    """Three flop situations, enough to exercise the postflop path."""

    HANDS = [(48, 49, 0, 4, 8), (44, 45, 1, 5, 9), (40, 41, 2, 6, 10)]

    @property
    def rounds(self):
        return 1

    def size(self, round=0):
        return len(self.HANDS)

    def get_hand(self, round, index):
        return self.HANDS[index]

    def index_hand(self, cards):
        return self.HANDS.index(tuple(cards))


class TestEquityTableGeneration:
    """Tests for writing whole equity tables."""

    def test_writes_stages_in_order(self, tmp_path, config, preflop_stage):
        path = tmp_path / "out" / "ehs.dat"
        flop = StreetStage(street=Street.FLOP, indexer=_TinyIndexer())

        sizes = generate_equity_table(
            path, [preflop_stage, flop], config, FakeOracle, show_progress=False
        )

        assert sizes == [169, 3]
        preflop_values, flop_values = read_equity_table(path, sizes)
        assert preflop_values[0] == pytest.approx(48 / 100.0)
        np.testing.assert_allclose(flop_values, [0.48, 0.44, 0.40])

    def test_refuses_to_overwrite(self, tmp_path, config, preflop_stage):
        path = tmp_path / "ehs.dat"
        path.write_bytes(b"existing")

        with pytest.raises(FileExistsError):
            generate_equity_table(path, [preflop_stage], config, FakeOracle, show_progress=False)

        assert path.read_bytes() == b"existing"
