# session.py
# Stateful per-player game controller wrapping the stateless move engine.

from enum import Enum
from typing import List, Optional, Tuple
import logging
import random

from pydantic import BaseModel, Field, ValidationError, field_validator

import core
from config import BOARD_SIZE, TARGET, UNDO_DEPTH
from profiles import GlobalBest, ProfileStore

logger = logging.getLogger(__name__)


class BestScope(str, Enum):
    CURRENT = 'current'
    ALL = 'all'


class HistoryEntry(BaseModel):
    """A pre-move state kept for undo."""
    board: List[List[int]]
    score: int = Field(..., ge=0)
    won: bool = False
    over: bool = False

    @field_validator('board')
    @classmethod
    def check_board(cls, value: List[List[int]]) -> List[List[int]]:
        return core.validate_board(value, BOARD_SIZE)


class SessionSnapshot(BaseModel):
    """Complete, serializable copy of a game session used for persistence."""
    board: List[List[int]]
    score: int = Field(..., ge=0)
    best: int = Field(default=0, ge=0)
    won: bool = False
    over: bool = False
    last_spawn: Optional[Tuple[int, int]] = None
    reached_target: bool = False
    history: List[HistoryEntry] = Field(default_factory=list, max_length=UNDO_DEPTH)

    @field_validator('board')
    @classmethod
    def check_board(cls, value: List[List[int]]) -> List[List[int]]:
        return core.validate_board(value, BOARD_SIZE)


class GameSession:
    """
    Owns one player's live game: board, score, best, win/over flags and undo history.

    Every state-changing operation persists a snapshot through the profile store. Writes
    are best-effort: a failed write is logged and the in-memory state stays authoritative.

    Moves are refused while the win prompt is showing (`won` is True) until
    `continue_game()` dismisses it.
    """

    def __init__(
        self,
        profile_id: str,
        profiles: ProfileStore,
        rng: Optional[random.Random] = None,
        target: int = TARGET,
        snapshot: Optional[SessionSnapshot] = None,
    ) -> None:
        self.profile_id = profile_id
        self.profiles = profiles
        self.global_best = GlobalBest(profiles)
        self.rng = rng
        self.target = target

        # The separate best record is authoritative; a reset of every profile's best
        # only rewrites those records.
        self.best = profiles.get_best_score(profile_id)
        if snapshot is None:
            self._start_fresh()
        else:
            self._restore(snapshot)

    @classmethod
    def load(
        cls,
        profile_id: str,
        profiles: ProfileStore,
        rng: Optional[random.Random] = None,
        target: int = TARGET,
    ) -> 'GameSession':
        """Rehydrates a player's session, starting a fresh game if the snapshot is missing or unusable."""
        snapshot = None
        raw = profiles.load_snapshot_raw(profile_id)
        if raw is not None:
            try:
                snapshot = SessionSnapshot.model_validate_json(raw)
            except ValidationError as exc:
                logger.warning("Discarding invalid snapshot for %s: %s", profile_id, exc.errors()[:1])
        session = cls(profile_id, profiles, rng=rng, target=target, snapshot=snapshot)
        if snapshot is None:
            session.persist()
        return session

    def _start_fresh(self) -> None:
        spawned = core.initialize_board(BOARD_SIZE, self.rng)
        self.board = spawned.board
        self.last_spawn = spawned.position
        self.score = 0
        self.won = False
        self.over = False
        self.reached_target = False
        self.history: List[HistoryEntry] = []

    def _restore(self, snapshot: SessionSnapshot) -> None:
        self.board = core.copy_board(snapshot.board)
        self.score = snapshot.score
        self.won = snapshot.won
        self.over = snapshot.over
        self.last_spawn = snapshot.last_spawn
        self.reached_target = snapshot.reached_target or snapshot.won
        self.history = [entry.model_copy(deep=True) for entry in snapshot.history]

    # --- Read-only views ---

    @property
    def progress(self) -> core.GameProgressState:
        if self.won:
            return core.GameProgressState.GAME_WON
        if self.over:
            return core.GameProgressState.GAME_OVER
        return core.GameProgressState.IN_PROGRESS

    @property
    def can_undo(self) -> bool:
        return bool(self.history)

    @property
    def highest_tile(self) -> int:
        return core.highest_tile_value(self.board)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            board=core.copy_board(self.board),
            score=self.score,
            best=self.best,
            won=self.won,
            over=self.over,
            last_spawn=self.last_spawn,
            reached_target=self.reached_target,
            history=[entry.model_copy(deep=True) for entry in self.history],
        )

    def persist(self) -> bool:
        """Writes the snapshot and best record. Never raises on storage failure."""
        saved = self.profiles.save_snapshot_raw(self.profile_id, self.snapshot().model_dump_json())
        saved = self.profiles.save_best_score(self.profile_id, self.best) and saved
        self.global_best.raise_floor(self.best)
        return saved

    # --- Transitions ---

    def _settle_flags(self) -> None:
        # Shared by normal moves and debug board jumps.
        if not self.reached_target and core.reached_target(self.board, self.target):
            self.won = True
            self.reached_target = True
        self.over = not core.has_any_legal_move(self.board)

    def apply_move(self, direction: core.DIRECTION) -> Optional[core.MoveResult]:
        """
        Slides the board, spawns a tile and updates score and flags.
        Returns:
            Optional[MoveResult]: None if input is currently refused (game over or win
                                  prompt showing), otherwise the engine result. A result
                                  with `moved=False` leaves the session untouched.
        """
        if self.over or self.won:
            logger.debug("Ignoring %s for %s: progress=%s", direction, self.profile_id, self.progress.name)
            return None

        result = core.move_direction(self.board, direction)
        if not result.moved:
            return result

        entry = HistoryEntry(board=core.copy_board(self.board), score=self.score, won=self.won, over=self.over)
        self.history = [entry] + self.history[:UNDO_DEPTH - 1]

        spawned = core.spawn_random_tile(result.board, self.rng)
        self.board = spawned.board
        self.last_spawn = spawned.position
        self.score += result.gained
        self.best = max(self.best, self.score)
        self._settle_flags()
        logger.debug("%s moved %s: +%d, score=%d", self.profile_id, core.DIRECTION(direction).value,
                     result.gained, self.score)

        self.persist()
        return result

    def continue_game(self) -> bool:
        """Dismisses the win prompt; the target latch stays set for this game."""
        if not self.won:
            return False
        self.won = False
        self.persist()
        return True

    def new_game(self) -> None:
        self._start_fresh()
        logger.info("New game for %s", self.profile_id)
        self.persist()

    def undo(self) -> bool:
        """Restores the newest history entry. `reached_target` is never rolled back."""
        if not self.history:
            return False
        entry, self.history = self.history[0], self.history[1:]
        self.board = core.copy_board(entry.board)
        self.score = entry.score
        self.won = entry.won
        self.over = entry.over
        self.last_spawn = None
        self.persist()
        return True

    def reset_best(self, scope: BestScope = BestScope.ALL) -> None:
        scope = BestScope(scope)
        if scope == BestScope.ALL:
            self.global_best.reset()
        self.best = 0
        logger.info("Reset best scores (%s) from %s", scope.value, self.profile_id)
        self.persist()

    def debug_set_board(self, board: core.Board) -> None:
        """Jumps straight to `board`; only reachable through the debug port."""
        self.board = core.validate_board(board, BOARD_SIZE)
        self.score = core.board_score(self.board)
        self.best = max(self.best, self.score)
        self.last_spawn = None
        self.history = []
        self._settle_flags()
        self.persist()
