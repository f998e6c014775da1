"""Tests for the flat equity table file."""

import numpy as np
import pytest

from hand_abstraction.abstraction.equity_table import EquityTable, read_equity_table, write_stage


@pytest.fixture
def table_path(tmp_path):
    path = tmp_path / "ehs.dat"
    with open(path, "wb") as fh:
        write_stage(fh, [0.25, 0.5, 0.75])
        write_stage(fh, np.array([0.1, 0.9]))
    return path


class TestEquityTable:
    """Tests for writing and slicing equity tables."""

    def test_layout_is_flat_little_endian_doubles(self, table_path):
        raw = table_path.read_bytes()

        assert len(raw) == 5 * 8
        np.testing.assert_array_equal(
            np.frombuffer(raw, dtype="<f8"), [0.25, 0.5, 0.75, 0.1, 0.9]
        )

    def test_stages(self, table_path):
        table = EquityTable.open(table_path, [3, 2])

        assert table.num_stages == 2
        assert len(table) == 5
        np.testing.assert_array_equal(table.stage(0), [0.25, 0.5, 0.75])
        np.testing.assert_array_equal(table.stage(1), [0.1, 0.9])

    def test_read_all(self, table_path):
        stages = read_equity_table(table_path, [3, 2])
        assert [s.tolist() for s in stages] == [[0.25, 0.5, 0.75], [0.1, 0.9]]

    def test_wrong_sizes(self, table_path):
        with pytest.raises(ValueError):
            EquityTable.open(table_path, [3, 3])

    def test_stage_out_of_range(self, table_path):
        table = EquityTable.open(table_path, [3, 2])
        with pytest.raises(IndexError):
            table.stage(2)

    def test_empty_table(self, tmp_path):
        path = tmp_path / "empty.dat"
        path.write_bytes(b"")

        table = EquityTable.open(path, [0])
        assert len(table.stage(0)) == 0

    def test_write_stage_rejects_2d(self, tmp_path):
        with open(tmp_path / "bad.dat", "wb") as fh:
            with pytest.raises(ValueError):
                write_stage(fh, np.zeros((2, 2)))
