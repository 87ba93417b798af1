from squad_battle.shared.grid_math import (
    AXIS_X, AXIS_Y, MAGE_FOOTPRINT, ORC_FOOTPRINT, SKELETON_FOOTPRINT, Step,
    footprint, jumped_cell, segment_axis, segment_distance, segments,
)
from squad_battle.shared.schemas import UnitKind


def test_step_arithmetic() -> None:
    assert Step(1, 0) + Step(0, -1) == Step(1, -1)
    assert Step(0, 1) * 2 == Step(0, 2)
    assert Step(-1, 2).apply((3, 3)) == (2, 5)


def test_segment_axis_detects_diagonals() -> None:
    assert segment_axis((0, 0), (2, 0)) == AXIS_X
    assert segment_axis((1, 1), (1, 3)) == AXIS_Y
    assert segment_axis((0, 0), (1, 1)) is None


def test_stationary_segment_has_zero_distance() -> None:
    axis = segment_axis((2, 2), (2, 2))
    assert segment_distance((2, 2), (2, 2), axis) == 0


def test_segment_distance_is_direction_independent() -> None:
    assert segment_distance((5, 1), (3, 1), AXIS_X) == 2
    assert segment_distance((3, 1), (5, 1), AXIS_X) == 2
    assert segment_distance((0, 3), (0, 2), AXIS_Y) == 1


def test_jumped_cell_is_the_middle_of_a_two_cell_segment() -> None:
    assert jumped_cell((0, 1), (2, 1), AXIS_X) == (1, 1)
    assert jumped_cell((2, 1), (0, 1), AXIS_X) == (1, 1)
    assert jumped_cell((3, 3), (3, 1), AXIS_Y) == (3, 2)


def test_segments_pairs_consecutive_waypoints() -> None:
    assert list(segments([(0, 0), (1, 0), (1, 1)])) == [
        (0, (0, 0), (1, 0)),
        (1, (1, 0), (1, 1)),
    ]
    assert list(segments([(0, 0)])) == []


def test_footprint_sizes_and_shapes() -> None:
    assert len(ORC_FOOTPRINT) == len(set(ORC_FOOTPRINT)) == 8
    assert len(MAGE_FOOTPRINT) == len(set(MAGE_FOOTPRINT)) == 8
    assert len(SKELETON_FOOTPRINT) == len(set(SKELETON_FOOTPRINT)) == 4

    assert set(footprint((3, 3), UnitKind.SKELETON)) == {(4, 3), (2, 3), (3, 4), (3, 2)}
    assert set(footprint((3, 3), UnitKind.MAGE)) == {
        (4, 3), (5, 3), (2, 3), (1, 3), (3, 4), (3, 5), (3, 2), (3, 1),
    }
    orc = set(footprint((3, 3), UnitKind.ORC))
    assert (3, 3) not in orc
    assert orc == {(x, y) for x in (2, 3, 4) for y in (2, 3, 4)} - {(3, 3)}
