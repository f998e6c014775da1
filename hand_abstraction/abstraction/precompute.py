"""
Equity precomputation over every indexed situation of a street.

For each street the index space of a hand indexer is split into contiguous
chunks, one per worker process. Workers decode each index into cards, query
an equity oracle, and return their slice; slices are stitched back together
in index order. Results are either scalar equities (written to the flat
equity table) or equity histograms (the clustering input).
"""

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
from tqdm import tqdm

from hand_abstraction.abstraction.clustering import chunk_bounds
from hand_abstraction.abstraction.equity import EquityOracle, HandRange, MonteCarloEquityOracle
from hand_abstraction.abstraction.equity_table import write_stage
from hand_abstraction.abstraction.indexer import CombinationIndexer, HandIndexer, PreflopIndexer
from hand_abstraction.game.cards import Card, Street, cards_to_mask
from hand_abstraction.shared.config import EquityConfig

logger = logging.getLogger(__name__)

OracleFactory = Callable[[int], EquityOracle]


@dataclass
class StreetStage:
    """One street of the table: which indexer enumerates it and at which round."""

    street: Street
    indexer: HandIndexer
    round: int = 0

    def size(self) -> int:
        return self.indexer.size(self.round)


def default_stages(streets: Sequence[Union[str, Street]] = tuple(Street)) -> List[StreetStage]:
    """
    Stage layout used by the driver scripts.

    Preflop uses the 169-hand isomorphic indexer; later streets use the dense
    combination indexer for their board size.
    """
    stages = []
    for street in streets:
        if isinstance(street, str):
            street = Street[street.upper()]
        if street == Street.PREFLOP:
            indexer: HandIndexer = PreflopIndexer()
        else:
            indexer = CombinationIndexer(street.board_size)
        stages.append(StreetStage(street=street, indexer=indexer))
    return stages


@lru_cache(maxsize=1)
def _random_range() -> HandRange:
    return HandRange.from_string("random")


def decode_situation(cards: Sequence[int]) -> Tuple[Tuple[Card, Card], Tuple[Card, ...]]:
    """Split decoded card indices into (hole cards, board)."""
    if len(cards) < 2:
        raise ValueError(f"Expected at least 2 cards, got {len(cards)}")
    hole = (Card.from_index(cards[0]), Card.from_index(cards[1]))
    board = tuple(Card.from_index(c) for c in cards[2:])
    return hole, board


def situation_equity(
    oracle: EquityOracle,
    cards: Sequence[int],
    n_samples: int,
    std_error: float,
) -> float:
    """Equity of the hole cards in ``cards`` against a random hand on its board."""
    hole, board = decode_situation(cards)
    ranges = [HandRange.from_combo(hole), _random_range()]
    return oracle.approx_equity(ranges, cards_to_mask(board), n_samples, std_error)[0]


def _equity_chunk(args) -> Tuple[int, np.ndarray]:
    stage, start, stop, oracle_factory, n_samples, std_error, seed = args
    oracle = oracle_factory(seed + start)
    values = np.zeros(stop - start)
    for offset, index in enumerate(range(start, stop)):
        cards = stage.indexer.get_hand(stage.round, index)
        values[offset] = situation_equity(oracle, cards, n_samples, std_error)
    return start, values


def _histogram_chunk(args) -> Tuple[int, np.ndarray]:
    stage, start, stop, oracle_factory, n_bins, seed = args
    oracle = oracle_factory(seed + start)
    values = np.zeros((stop - start, n_bins))
    for offset, index in enumerate(range(start, stop)):
        hole, board = decode_situation(stage.indexer.get_hand(stage.round, index))
        values[offset] = oracle.equity_histogram(hole, board, n_bins)
    return start, values


def _run_chunks(
    worker: Callable,
    work: List[tuple],
    out: np.ndarray,
    n_workers: int,
    desc: str,
    show_progress: bool,
) -> None:
    """Run chunk workers and copy each returned slice into ``out`` at its offset."""
    if n_workers == 1 or len(work) == 1:
        for item in tqdm(work, desc=desc, unit="chunk", disable=not show_progress):
            start, values = worker(item)
            out[start : start + len(values)] = values
        return

    with ProcessPoolExecutor(max_workers=n_workers) as executor:
        futures = [executor.submit(worker, item) for item in work]
        for future in tqdm(
            as_completed(futures),
            total=len(futures),
            desc=desc,
            unit="chunk",
            disable=not show_progress,
        ):
            start, values = future.result()
            out[start : start + len(values)] = values


def compute_stage_equities(
    stage: StreetStage,
    config: EquityConfig,
    oracle_factory: OracleFactory = MonteCarloEquityOracle,
    seed: int = 0,
    show_progress: bool = True,
) -> np.ndarray:
    """
    Compute the equity of every indexed situation of one street.

    Args:
        stage: Street and indexer to enumerate
        config: Sample budget, precision and worker count
        oracle_factory: Builds an oracle from a per-chunk seed (must be
            picklable when ``config.n_workers > 1``)
        seed: Base seed; each chunk uses ``seed + chunk_start``
        show_progress: Show a tqdm bar

    Returns:
        Array of length ``stage.size()`` in index order
    """
    size = stage.size()
    std_error = (
        config.preflop_std_error if stage.street == Street.PREFLOP else config.postflop_std_error
    )
    work = [
        (stage, start, stop, oracle_factory, config.max_samples, std_error, seed)
        for start, stop in chunk_bounds(size, config.n_workers)
    ]

    equities = np.zeros(size)
    if size:
        _run_chunks(
            _equity_chunk,
            work,
            equities,
            config.n_workers,
            f"{stage.street.name} equities",
            show_progress,
        )
    return equities


def compute_stage_histograms(
    stage: StreetStage,
    config: EquityConfig,
    oracle_factory: OracleFactory = MonteCarloEquityOracle,
    seed: int = 0,
    show_progress: bool = True,
) -> np.ndarray:
    """
    Compute an equity histogram for every indexed situation of one street.

    Returns:
        Array of shape ``(stage.size(), config.histogram_bins)`` in index order
    """
    size = stage.size()
    n_bins = config.histogram_bins
    work = [
        (stage, start, stop, oracle_factory, n_bins, seed)
        for start, stop in chunk_bounds(size, config.n_workers)
    ]

    histograms = np.zeros((size, n_bins))
    if size:
        _run_chunks(
            _histogram_chunk,
            work,
            histograms,
            config.n_workers,
            f"{stage.street.name} histograms",
            show_progress,
        )
    return histograms


def generate_equity_table(
    path: Union[str, Path],
    stages: Sequence[StreetStage],
    config: EquityConfig,
    oracle_factory: OracleFactory = MonteCarloEquityOracle,
    seed: int = 0,
    show_progress: bool = True,
) -> List[int]:
    """
    Compute every stage and write them, in order, to a new equity table file.

    Refuses to overwrite an existing file.

    Returns:
        Stage sizes in file order (needed to read the table back)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    sizes = []
    with open(path, "xb") as fh:
        for stage in stages:
            start = time.time()
            size = stage.size()
            logger.info(f"{size} combinations on the {stage.street.name}")

            equities = compute_stage_equities(
                stage, config, oracle_factory, seed=seed, show_progress=show_progress
            )
            write_stage(fh, equities)
            sizes.append(size)

            elapsed_ms = max((time.time() - start) * 1000, 1e-9)
            logger.info(
                f"{stage.street.name} done in {elapsed_ms:.0f}ms "
                f"({size / elapsed_ms:.2f} situations/ms)"
            )

    logger.info(f"Wrote equity table {path} with stage sizes {sizes}")
    return sizes


def stage_for_street(street: Union[str, Street], stages: Sequence[StreetStage]) -> Optional[int]:
    """Position of ``street`` within ``stages``, or None when absent."""
    if isinstance(street, str):
        street = Street[street.upper()]
    for position, stage in enumerate(stages):
        if stage.street == street:
            return position
    return None
