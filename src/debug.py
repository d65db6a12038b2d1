# debug.py
# Opt-in board overrides for reaching late-game positions without grinding.

import logging

import core
from config import BOARD_SIZE
from session import GameSession

logger = logging.getLogger(__name__)


class DebugDisabledError(RuntimeError):
    """Raised when the debug port is used without being switched on."""


class InvalidBoardError(ValueError):
    """Raised for a debug board that is not a valid N x N grid."""


# Cells filled by quick_merge, ordered so the second tile slides into the first.
QUICK_MERGE_CELLS = {
    core.DIRECTION.LEFT: ((0, 0), (0, 1)),
    core.DIRECTION.RIGHT: ((0, 3), (0, 2)),
    core.DIRECTION.UP: ((0, 0), (1, 0)),
    core.DIRECTION.DOWN: ((3, 0), (2, 0)),
}


class DebugTools:
    """
    Capability wrapper around `GameSession.debug_set_board`.

    The session computes score, win and terminal flags exactly as it does for a
    normal move; this class only validates input and checks the opt-in flag.
    """

    def __init__(self, session: GameSession, enabled: bool = False) -> None:
        self.session = session
        self.enabled = enabled

    def _require_enabled(self) -> None:
        if not self.enabled:
            raise DebugDisabledError("Debug tools are disabled.")

    def set_board(self, matrix) -> core.Board:
        self._require_enabled()
        try:
            board = core.validate_board(matrix, BOARD_SIZE)
        except ValueError as exc:
            raise InvalidBoardError(str(exc)) from exc
        logger.info("Debug board set for %s", self.session.profile_id)
        self.session.debug_set_board(board)
        return board

    def quick_merge(self, value: int, direction: core.DIRECTION) -> core.Board:
        """Places two `value` tiles next to each other so one move in `direction` merges them."""
        self._require_enabled()
        if isinstance(value, bool) or not isinstance(value, int) or value < 2 or value & (value - 1):
            raise InvalidBoardError("Quick merge value must be a power of two of at least 2.")
        board = core.create_empty_board(BOARD_SIZE)
        for row, col in QUICK_MERGE_CELLS[core.DIRECTION(direction)]:
            board[row][col] = value
        self.session.debug_set_board(board)
        return board
