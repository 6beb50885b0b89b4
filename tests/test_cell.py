import numpy as np
import pytest

from bigspace.cell import GridCell
from bigspace.grid import Grid


def test_add_sub_round_trip():
    a, b = GridCell(7, -3, 12), GridCell(-100, 40, 5)
    assert (a + b) - b == a
    assert a + b == b + a


def test_one_plus_one_is_one_times_two():
    one = GridCell(1, 1, 1)
    assert one == GridCell.ONE
    assert one + GridCell(1, 1, 1) == GridCell(2, 2, 2)
    assert one * 2 == GridCell(2, 2, 2)
    assert 2 * one == GridCell(2, 2, 2)


def test_addition_wraps():
    cell = GridCell(GridCell.MAX_INDEX, 0, 0) + GridCell.ONE
    assert cell == GridCell(GridCell.MIN_INDEX, 1, 1)
    assert GridCell(GridCell.MIN_INDEX, 0, 0) - GridCell.ONE == GridCell(GridCell.MAX_INDEX, -1, -1)


def test_integer_vector_offsets():
    zero = GridCell(0, 0, 0)
    assert zero + (1, 1, 1) == GridCell(1, 1, 1)
    assert GridCell(1, 1, 1) - (1, 1, 1) == GridCell(0, 0, 0)
    assert GridCell(5, -2, 7) + (-5, 2, -7) == zero


def test_augmented_assignment():
    cell = GridCell.ZERO
    cell += GridCell.ONE
    cell -= (0, 1, 0)
    assert cell == GridCell(1, 0, 1)


def test_multiplication_overflow_raises():
    with pytest.raises(OverflowError):
        GridCell(GridCell.MAX_INDEX, 0, 0) * 2


def test_out_of_range_construction_raises():
    with pytest.raises(OverflowError):
        GridCell(GridCell.MAX_INDEX + 1, 0, 0)


def test_min_max():
    a, b = GridCell(1, -5, 3), GridCell(-2, 4, 3)
    assert a.min(b) == GridCell(-2, -5, 3)
    assert a.max(b) == GridCell(1, 4, 3)


def test_as_dvec3_default_grid():
    assert np.array_equal(GridCell.ONE.as_dvec3(Grid()), np.full(3, 2000.0))


def test_as_dvec3_matches_cell_to_float():
    grid = Grid(10.0, 0.0)
    cell = GridCell(1, -2, 3)
    assert np.array_equal(cell.as_dvec3(grid), grid.cell_to_float(cell))


def test_hashable_and_unpackable():
    assert len({GridCell(1, 2, 3), GridCell(1, 2, 3)}) == 1
    x, y, z = GridCell(4, 5, 6)
    assert (x, y, z) == (4, 5, 6)