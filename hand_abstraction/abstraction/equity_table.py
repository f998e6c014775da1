"""
Equity table file format.

A flat, headerless dump of little-endian float64 values: one per indexed
situation in increasing index order, one stage after another. Stage sizes
are not stored; readers supply them (they come from the hand indexer).
"""

import logging
from pathlib import Path
from typing import BinaryIO, List, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

EQUITY_DTYPE = np.dtype("<f8")


def write_stage(fh: BinaryIO, values) -> int:
    """
    Append one stage's values to an open binary file.

    Args:
        fh: File opened for binary writing
        values: Equity values in index order

    Returns:
        Number of bytes written
    """
    data = np.ascontiguousarray(values, dtype=EQUITY_DTYPE)
    if data.ndim != 1:
        raise ValueError(f"Stage values must be 1-D, got shape {data.shape}")
    payload = data.tobytes()
    fh.write(payload)
    return len(payload)


class EquityTable:
    """Read-only, memory-mapped view of an equity table split into stages."""

    def __init__(self, values: np.ndarray, stage_sizes: Sequence[int]):
        self._values = values
        self.stage_sizes = list(stage_sizes)
        self._offsets = np.concatenate(([0], np.cumsum(self.stage_sizes, dtype=np.int64)))

    @classmethod
    def open(cls, path: Union[str, Path], stage_sizes: Sequence[int]) -> "EquityTable":
        """
        Memory-map an equity table file.

        Args:
            path: Table file
            stage_sizes: Number of entries of each stage, in file order

        Raises:
            ValueError: If the file length does not match the stage sizes
        """
        path = Path(path)
        if any(size < 0 for size in stage_sizes):
            raise ValueError("Stage sizes must be non-negative")

        expected = EQUITY_DTYPE.itemsize * sum(stage_sizes)
        actual = path.stat().st_size
        if actual != expected:
            raise ValueError(
                f"{path} holds {actual} bytes but stage sizes {list(stage_sizes)} "
                f"require {expected}"
            )

        if expected == 0:
            values = np.zeros(0, dtype=EQUITY_DTYPE)
        else:
            values = np.memmap(path, dtype=EQUITY_DTYPE, mode="r")
        logger.debug(f"Opened equity table {path} with {len(stage_sizes)} stages")
        return cls(values, stage_sizes)

    @property
    def num_stages(self) -> int:
        return len(self.stage_sizes)

    def stage(self, index: int) -> np.ndarray:
        """Values of one stage, in index order."""
        if not 0 <= index < self.num_stages:
            raise IndexError(f"Stage {index} out of range for {self.num_stages} stages")
        return self._values[self._offsets[index] : self._offsets[index + 1]]

    def __len__(self) -> int:
        return int(self._offsets[-1])


def read_equity_table(path: Union[str, Path], stage_sizes: Sequence[int]) -> List[np.ndarray]:
    """Load every stage of an equity table into memory."""
    table = EquityTable.open(path, stage_sizes)
    return [np.array(table.stage(i)) for i in range(table.num_stages)]
