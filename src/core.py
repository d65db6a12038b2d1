# core.py
# This file is the stateless move engine for the 2048 game.

from enum import Enum
from typing import List, NamedTuple, Optional, Tuple
import random

from config import BOARD_SIZE, INITIAL_TILES, SPAWN_FOUR_PROBABILITY, TARGET

Board = List[List[int]]
Coord = Tuple[int, int]


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # Lost
    GAME_WON = 3  # Target reached, waiting for the player to continue


class DIRECTION(str, Enum):
    """Represents the possible move directions."""
    UP = 'up'
    DOWN = 'down'
    LEFT = 'left'
    RIGHT = 'right'


class TileMovement(NamedTuple):
    """One tile travelling from `source` to `destination` during a move."""
    source: Coord
    destination: Coord
    value: int
    merged: bool = False


class LineResult(NamedTuple):
    line: List[int]
    gained: int
    movements: List[TileMovement]
    moved: bool


class MoveResult(NamedTuple):
    board: Board
    moved: bool
    gained: int
    movements: List[TileMovement]


class SpawnResult(NamedTuple):
    board: Board
    position: Optional[Coord]

# --- Board Helper Functions ---

def create_empty_board(size: int = BOARD_SIZE) -> Board:
    return [[0] * size for _ in range(size)]

def copy_board(board: Board) -> Board:
    return [list(row) for row in board]

def get_board_size(board: Board) -> int:
    """
    Gets the size (N) of an N x N board.
    Args:
        board (Board): The game board.
    Returns:
        int: The dimension of the board.
    Raises:
        ValueError: If the board is not square or empty.
    """
    if not board or not all(len(row) == len(board) for row in board):
        raise ValueError("Board must be a non-empty square matrix.")
    return len(board)

def validate_board(board, size: int = BOARD_SIZE) -> Board:
    """
    Checks that untrusted input is a size x size grid of non-negative integers.
    Args:
        board: The candidate board, usually decoded JSON.
        size (int): The required dimension.
    Returns:
        Board: A fresh copy of the board with every cell as a plain int.
    Raises:
        ValueError: If the shape or any cell value is wrong.
    """
    if not isinstance(board, (list, tuple)) or len(board) != size:
        raise ValueError(f"Board must have exactly {size} rows.")
    validated: Board = []
    for row in board:
        if not isinstance(row, (list, tuple)) or len(row) != size:
            raise ValueError(f"Every row must have exactly {size} cells.")
        for cell in row:
            # bool is an int subclass; a JSON true is not a tile.
            if isinstance(cell, bool) or not isinstance(cell, int) or cell < 0:
                raise ValueError("Cells must be non-negative integers.")
        validated.append([int(cell) for cell in row])
    return validated

def get_empty_cells(board: Board) -> List[Coord]:
    """
    Get coordinates of empty (0-value) cells in the given board.
    Args:
        board (Board): The board to check.
    Returns:
        List[Coord]: List of (row, col) tuples for empty cells, in row-major order.
    """
    n = get_board_size(board)
    empty_cells = []
    for row in range(n):
        for col in range(n):
            if board[row][col] == 0:
                empty_cells.append((row, col))
    return empty_cells

def spawn_random_tile(board: Board, rng: Optional[random.Random] = None) -> SpawnResult:
    """
    Adds a new tile (90% chance of 2, 10% chance of 4) to a uniformly chosen empty cell
    on a copy of the board.
    Args:
        board (Board): The current game board.
        rng (random.Random, optional): Source of randomness. Defaults to the module RNG.
    Returns:
        SpawnResult: The new board and the spawn position, or an unchanged copy
                     and None when the board has no empty cell.
    """
    rng = rng or random
    new_board = copy_board(board)
    empty_cells = get_empty_cells(board)
    if not empty_cells:
        return SpawnResult(new_board, None)

    row, col = rng.choice(empty_cells)
    new_board[row][col] = 4 if rng.random() < SPAWN_FOUR_PROBABILITY else 2
    return SpawnResult(new_board, (row, col))

def initialize_board(size: int = BOARD_SIZE, rng: Optional[random.Random] = None) -> SpawnResult:
    """
    Initializes a new game board with two random tiles.
    Args:
        size (int): The dimension of the N x N game board. Default is 4.
        rng (random.Random, optional): Source of randomness.
    Returns:
        SpawnResult: The initial board and the position of the last tile placed.
    Raises:
        ValueError: If board size is not a positive integer.
    """
    if not isinstance(size, int) or size <= 0:
        raise ValueError("Board size must be a positive integer.")

    current = SpawnResult(create_empty_board(size), None)
    for _ in range(INITIAL_TILES):
        current = spawn_random_tile(current.board, rng)
    return current

# --- Line Manipulation (Core Move Logic) ---

def slide_merge_line(line: List[int], row_index: int = 0) -> LineResult:
    """
    Slides a single line towards index 0, merging equal neighbours at most once per pair.

    Every other direction is expressed through this primitive by reflecting or
    transposing the board first, so all four directions share one merge rule.
    Args:
        line (List[int]): The line to process.
        row_index (int): Row reported in the movement coordinates.
    Returns:
        LineResult: The processed line, score gained, tile movements and whether
                    the line changed.
    """
    tiles = [(col, value) for col, value in enumerate(line) if value != 0]
    new_line: List[int] = []
    movements: List[TileMovement] = []
    gained = 0

    read_idx = 0
    while read_idx < len(tiles):
        col, value = tiles[read_idx]
        write_col = len(new_line)
        if read_idx + 1 < len(tiles) and tiles[read_idx + 1][1] == value:
            merged_value = value * 2
            new_line.append(merged_value)
            gained += merged_value
            movements.append(TileMovement((row_index, col), (row_index, write_col), value, True))
            movements.append(
                TileMovement((row_index, tiles[read_idx + 1][0]), (row_index, write_col), value, True)
            )
            read_idx += 2 # The merged tile is done for this move
        else:
            new_line.append(value)
            movements.append(TileMovement((row_index, col), (row_index, write_col), value, False))
            read_idx += 1

    new_line += [0] * (len(line) - len(new_line))
    moved = tuple(new_line) != tuple(line)
    return LineResult(new_line, gained, movements, moved)

# --- Board Transformations ---

def transpose_board(board: Board) -> Board:
    """
    Transposes a given board (swaps rows and columns).
    Args:
        board (Board): The board to transpose.
    Returns:
        Board: A new transposed board.
    """
    n = get_board_size(board)
    new_board = create_empty_board(n)
    for r in range(n):
        for c in range(n):
            new_board[c][r] = board[r][c]
    return new_board

def reverse_rows(board: Board) -> Board:
    """
    Reverses each row in a given board.
    Args:
        board (Board): The board whose rows are to be reversed.
    Returns:
        Board: A new board with rows reversed.
    """
    return [row[::-1] for row in board]

# --- Core Game Move Processing ---

def _slide_all_lines_left(board: Board) -> MoveResult:
    n = get_board_size(board)
    processed_board: Board = []
    movements: List[TileMovement] = []
    total_gained = 0
    moved = False

    for r_idx in range(n):
        result = slide_merge_line(board[r_idx], r_idx)
        processed_board.append(result.line)
        movements.extend(result.movements)
        total_gained += result.gained
        moved = moved or result.moved

    return MoveResult(processed_board, moved, total_gained, movements)

def _remap(movements: List[TileMovement], to_board) -> List[TileMovement]:
    return [
        m._replace(source=to_board(*m.source), destination=to_board(*m.destination))
        for m in movements
    ]

def move_direction(board: Board, direction: DIRECTION) -> MoveResult:
    """
    Processes a move in the specified direction on a copy of the board.
    Args:
        board (Board): The current game board.
        direction (DIRECTION): The direction to move.
    Returns:
        MoveResult: The new board, whether anything changed, the score gained and
                    the tile movements in the input board's coordinates.
    Raises:
        ValueError: If the board is malformed or an invalid direction is specified.
    """
    n = get_board_size(board)
    direction = DIRECTION(direction)

    if direction == DIRECTION.LEFT:
        return _slide_all_lines_left(copy_board(board))

    elif direction == DIRECTION.RIGHT:
        result = _slide_all_lines_left(reverse_rows(board))
        new_board = reverse_rows(result.board)
        movements = _remap(result.movements, lambda r, c: (r, n - 1 - c))

    elif direction == DIRECTION.UP:
        result = _slide_all_lines_left(transpose_board(board))
        new_board = transpose_board(result.board)
        movements = _remap(result.movements, lambda r, c: (c, r))

    else:
        # Down: each column read bottom-to-top becomes a left-moving line.
        result = _slide_all_lines_left(reverse_rows(transpose_board(board)))
        new_board = transpose_board(reverse_rows(result.board))
        movements = _remap(result.movements, lambda r, c: (n - 1 - c, r))

    return MoveResult(new_board, result.moved, result.gained, movements)

# --- Game State Checks ---

def highest_tile_value(board: Board) -> int:
    """Returns the largest cell value, or 0 for an all-empty board."""
    get_board_size(board)
    return max(max(row) for row in board)

def reached_target(board: Board, target: int = TARGET) -> bool:
    """
    Check if a tile of at least `target` exists.
    Args:
        board (Board): The game board.
        target (int): The tile value that signifies a win. Default is 2048.
    Returns:
        bool: True if the target has been reached, False otherwise.
    """
    return highest_tile_value(board) >= target

def has_any_legal_move(board: Board) -> bool:
    """
    Checks if any move is possible without performing one.
    Args:
        board (Board): The game board.
    Returns:
        bool: True if a cell is empty or two orthogonal neighbours are equal.
    """
    n = get_board_size(board)
    for r in range(n):
        for c in range(n):
            value = board[r][c]
            if value == 0:
                return True
            if c + 1 < n and board[r][c + 1] == value:
                return True
            if r + 1 < n and board[r + 1][c] == value:
                return True
    return False

def board_score(board: Board) -> int:
    """Sum of all positive cells; used when a board is set directly."""
    return sum(value for row in board for value in row if value > 0)
