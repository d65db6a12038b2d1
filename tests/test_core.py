import random
from collections import Counter

import pytest

import core
from config import SPAWN_FOUR_PROBABILITY, SPAWN_TWO_PROBABILITY
from core import DIRECTION, TileMovement

from conftest import board_with


def test_slide_merge_line_merges_equal_neighbours_once():
    result = core.slide_merge_line([2, 2, 4, 0])
    assert result.line == [4, 4, 0, 0]
    assert result.gained == 4
    assert result.moved


def test_no_double_merge():
    result = core.slide_merge_line([2, 2, 2, 2])
    assert result.line == [4, 4, 0, 0]
    assert result.gained == 8


def test_merge_skips_gaps():
    result = core.slide_merge_line([2, 0, 0, 2])
    assert result.line == [4, 0, 0, 0]
    assert result.gained == 4


def test_line_that_cannot_move():
    result = core.slide_merge_line([2, 4, 8, 16])
    assert result.line == [2, 4, 8, 16]
    assert result.gained == 0
    assert not result.moved


def test_line_movements():
    result = core.slide_merge_line([0, 4, 4, 8], row_index=2)
    assert result.movements == [
        TileMovement((2, 1), (2, 0), 4, True),
        TileMovement((2, 2), (2, 0), 4, True),
        TileMovement((2, 3), (2, 1), 8, False),
    ]


def test_move_right_mirrors_left():
    board = board_with({(0, 0): 2, (0, 1): 2, (0, 2): 4})
    result = core.move_direction(board, DIRECTION.RIGHT)
    assert result.board[0] == [0, 0, 4, 4]
    assert result.gained == 4
    assert set(result.movements) == {
        TileMovement((0, 2), (0, 3), 4, False),
        TileMovement((0, 1), (0, 2), 2, True),
        TileMovement((0, 0), (0, 2), 2, True),
    }


def test_move_up_merges_columns():
    board = board_with({(0, 0): 2, (1, 0): 2})
    result = core.move_direction(board, DIRECTION.UP)
    assert result.board[0][0] == 4
    assert result.board[1][0] == 0
    assert {m.destination for m in result.movements} == {(0, 0)}


def test_move_down_merges_columns():
    board = board_with({(0, 0): 2, (1, 0): 2})
    result = core.move_direction(board, DIRECTION.DOWN)
    assert result.board[3][0] == 4
    assert result.board[2][0] == 0
    assert sorted(m.source for m in result.movements) == [(0, 0), (1, 0)]
    assert all(m.destination == (3, 0) and m.merged for m in result.movements)


def test_move_down_keeps_columns_apart():
    board = board_with({(0, 1): 8, (2, 3): 16})
    result = core.move_direction(board, DIRECTION.DOWN)
    assert result.board == board_with({(3, 1): 8, (3, 3): 16})
    assert set(result.movements) == {
        TileMovement((0, 1), (3, 1), 8, False),
        TileMovement((2, 3), (3, 3), 16, False),
    }


def test_move_does_not_mutate_input():
    board = board_with({(0, 0): 2, (0, 1): 2})
    snapshot = [list(row) for row in board]
    for direction in DIRECTION:
        core.move_direction(board, direction)
    assert board == snapshot


def test_direction_accepts_strings():
    board = board_with({(0, 3): 2})
    assert core.move_direction(board, 'left').board[0] == [2, 0, 0, 0]


@pytest.mark.parametrize('direction', list(DIRECTION))
def test_repeated_move_settles(direction):
    board = [
        [2, 2, 4, 8],
        [0, 4, 4, 0],
        [2, 0, 2, 2],
        [16, 16, 0, 16],
    ]
    for _ in range(10):
        result = core.move_direction(board, direction)
        if not result.moved:
            break
        board = result.board
    again = core.move_direction(board, direction)
    assert not again.moved
    assert again.gained == 0
    assert again.board == board


def test_invalid_direction():
    with pytest.raises(ValueError):
        core.move_direction(board_with({}), 'sideways')


def test_non_square_board_fails_fast():
    with pytest.raises(ValueError):
        core.move_direction([[2, 0], [0, 0, 0]], DIRECTION.LEFT)
    with pytest.raises(ValueError):
        core.has_any_legal_move([])


def test_has_any_legal_move_false_on_checkerboard():
    board = [
        [2, 4, 2, 4],
        [4, 2, 4, 2],
        [2, 4, 2, 4],
        [4, 2, 4, 2],
    ]
    assert not core.has_any_legal_move(board)


def test_has_any_legal_move_with_merge_or_gap():
    full = [
        [2, 4, 2, 4],
        [4, 2, 4, 2],
        [2, 4, 2, 4],
        [4, 2, 4, 4],
    ]
    assert core.has_any_legal_move(full)
    full[3][3] = 0
    assert core.has_any_legal_move(full)


def test_highest_tile_value():
    board = [
        [2, 4, 8, 16],
        [32, 64, 128, 256],
        [512, 1024, 2048, 0],
        [0, 0, 0, 0],
    ]
    assert core.highest_tile_value(board) == 2048
    assert core.highest_tile_value(board_with({})) == 0
    assert core.reached_target(board, 2048)
    assert not core.reached_target(board, 4096)


def test_spawn_only_on_empty_cells():
    rng = random.Random(7)
    board = board_with({(0, 0): 2, (1, 1): 4, (2, 2): 8})
    for _ in range(50):
        spawned = core.spawn_random_tile(board, rng)
        row, col = spawned.position
        assert board[row][col] == 0
        assert spawned.board[row][col] in (2, 4)
        assert sum(v != 0 for r in spawned.board for v in r) == 4


def test_spawn_on_full_board_is_noop():
    full = [[2, 4, 2, 4], [4, 2, 4, 2], [2, 4, 2, 4], [4, 2, 4, 2]]
    spawned = core.spawn_random_tile(full, random.Random(1))
    assert spawned.position is None
    assert spawned.board == full


def test_spawn_distribution():
    assert SPAWN_TWO_PROBABILITY + SPAWN_FOUR_PROBABILITY == pytest.approx(1.0)
    rng = random.Random(12345)
    empty = board_with({})
    counts = Counter()
    for _ in range(20000):
        spawned = core.spawn_random_tile(empty, rng)
        counts[spawned.board[spawned.position[0]][spawned.position[1]]] += 1
    assert set(counts) == {2, 4}
    assert counts[4] / 20000 == pytest.approx(SPAWN_FOUR_PROBABILITY, abs=0.01)


def test_spawn_position_is_uniform():
    rng = random.Random(99)
    empty = board_with({})
    positions = Counter(core.spawn_random_tile(empty, rng).position for _ in range(16000))
    assert len(positions) == 16
    assert min(positions.values()) > 800


def test_initialize_board():
    spawned = core.initialize_board(rng=random.Random(3))
    tiles = [v for row in spawned.board for v in row if v]
    assert len(tiles) == 2
    assert set(tiles) <= {2, 4}
    assert spawned.position is not None
    with pytest.raises(ValueError):
        core.initialize_board(0)


def test_validate_board():
    assert core.validate_board(board_with({(0, 0): 2})) == board_with({(0, 0): 2})
    for bad in ([[0] * 4] * 3, [[0] * 3] * 4, [[0, 0, 0, -2]] + [[0] * 4] * 3,
                [[0, 0, 0, 'x']] + [[0] * 4] * 3, [[True, 0, 0, 0]] + [[0] * 4] * 3, 'nope'):
        with pytest.raises(ValueError):
            core.validate_board(bad)


def test_board_score():
    assert core.board_score(board_with({(0, 0): 2048, (3, 3): 4})) == 2052
