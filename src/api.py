from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Tuple
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import logging
import random

import core
from config import BOARD_SIZE, TARGET, UNDO_DEPTH, Settings
from debug import DebugDisabledError
from manager import GameManager
from profiles import Profile, ProfileNotFoundError
from session import BestScope
from storage import KeyValueStore, create_store

logger = logging.getLogger(__name__)

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
router = APIRouter()

# Settings of the most recently built app; the move limit is read from it per request.
_app_settings = Settings


def current_rate_limit() -> str:
    return _app_settings.RATE_LIMIT


# --- Pydantic Models for API requests and responses ---

class GameStateData(BaseModel):
    """Represents the complete state of the active player's game."""
    player_id: str = Field(..., description="Id of the profile this game belongs to.")
    player_name: str = Field(..., description="Display name of that profile.")
    board: List[List[int]] = Field(..., description="The N x N game board, represented as a list of lists.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    best: int = Field(..., ge=0, description="Best score of this player.")
    best_global: int = Field(..., ge=0, description="Best score across every player.")
    progress: core.GameProgressState = Field(
        ...,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER)."
    )
    won: bool = Field(..., description="True while the win prompt should be shown.")
    over: bool = Field(..., description="True when no move is possible.")
    reached_target: bool = Field(..., description="True once the target tile appeared in this game.")
    last_spawn: Optional[Tuple[int, int]] = Field(default=None, description="(row, col) of the newest tile.")
    can_undo: bool = Field(..., description="True if at least one undo step is available.")
    undo_depth: int = Field(default=UNDO_DEPTH, description="Maximum number of undo steps kept.")
    win_tile: int = Field(default=TARGET, gt=0, description="The tile value required to win.")
    board_size: int = Field(default=BOARD_SIZE, gt=0, description="The dimension N of the N x N board.")


class TileMovementData(BaseModel):
    source: Tuple[int, int]
    destination: Tuple[int, int]
    value: int
    merged: bool


class MoveRequestData(BaseModel):
    """Data required to make a move."""
    direction: core.DIRECTION = Field(..., description="Direction of the move (up, down, left, right).")


class MoveResponseData(GameStateData):
    """Response after a move, including the new game state and move effectiveness."""
    move_was_effective: bool = Field(
        ...,
        description="True if the move resulted in a change to the board state, False otherwise."
    )
    gained: int = Field(default=0, ge=0, description="Score gained by merges in this move.")
    movements: List[TileMovementData] = Field(
        default_factory=list,
        description="Tile movements in board coordinates, for animating the move."
    )
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was invalid, game ended, or other info."
    )


class ResetBestRequest(BaseModel):
    scope: BestScope = Field(default=BestScope.ALL, description="'current' player only, or 'all' players.")


class ProfileListData(BaseModel):
    profiles: List[Profile]
    active_id: str


class ProfileNameData(BaseModel):
    name: str = Field(default='', max_length=64, description="Display name; blank falls back to a default.")


class ActiveProfileRequest(BaseModel):
    id: str = Field(..., min_length=1)


class GlobalBestData(BaseModel):
    best_global: int = Field(..., ge=0)


class ThemeData(BaseModel):
    theme: Literal['light', 'dark']


class QuickMergeRequest(BaseModel):
    value: int = Field(..., gt=0, description="Value of the two tiles to place.")
    direction: core.DIRECTION = Field(..., description="Direction the two tiles will merge in.")


class SetBoardRequest(BaseModel):
    board: List[List[int]] = Field(..., description="Full N x N board of non-negative integers.")

# --- Helpers ---

def get_manager(request: Request) -> GameManager:
    return request.app.state.manager


def build_state(manager: GameManager) -> dict:
    session = manager.session
    return dict(
        player_id=session.profile_id,
        player_name=manager.active_profile.name,
        board=session.board,
        score=session.score,
        best=session.best,
        best_global=manager.global_best(),
        progress=session.progress,
        won=session.won,
        over=session.over,
        reached_target=session.reached_target,
        last_spawn=session.last_spawn,
        can_undo=session.can_undo,
        win_tile=session.target,
    )


def _profile_not_found(exc: ProfileNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Unknown profile: {exc.args[0]}")

# --- Game Endpoints ---

@router.get("/game", response_model=GameStateData, summary="Get the Active Game")
async def get_game(manager: GameManager = Depends(get_manager)):
    """Returns the active player's game, creating one with two random tiles on first access."""
    with manager.lock:
        return GameStateData(**build_state(manager))


@router.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit(current_rate_limit)
async def make_move(request: Request, request_data: MoveRequestData, manager: GameManager = Depends(get_manager)):
    """
    Processes a player's move in the active game.

    The server will:
    1. Refuse the move if the game is over or the win prompt is still showing.
    2. Slide and merge tiles; if nothing changed, the game is left untouched.
    3. Otherwise add a new random tile (2 or 4), update score and best, and save.

    Returns the updated game state, whether the move was effective, and an optional message.
    """
    with manager.lock:
        session = manager.session
        result = session.apply_move(request_data.direction)

        message_for_client: Optional[str] = None
        if result is None:
            message_for_client = "Move ignored; continue or start a new game first."
        elif not result.moved:
            message_for_client = "Move was not effective; board state unchanged by slide."

        if session.progress == core.GameProgressState.GAME_WON:
            message_for_client = "Congratulations! You won!"
        elif session.progress == core.GameProgressState.GAME_OVER:
            message_for_client = "Game Over. No more valid moves."

        moved = result is not None and result.moved
        return MoveResponseData(
            **build_state(manager),
            move_was_effective=moved,
            gained=result.gained if moved else 0,
            movements=[TileMovementData(**m._asdict()) for m in result.movements] if moved else [],
            message=message_for_client,
        )


@router.post("/game/undo", response_model=GameStateData, summary="Undo the Last Move")
async def undo_move(manager: GameManager = Depends(get_manager)):
    with manager.lock:
        manager.session.undo()
        return GameStateData(**build_state(manager))


@router.post("/game/new", response_model=GameStateData, summary="Start a New 2048 Game")
async def start_new_game(manager: GameManager = Depends(get_manager)):
    """Resets board, score and flags for the active player. Best scores are kept."""
    with manager.lock:
        manager.session.new_game()
        return GameStateData(**build_state(manager))


@router.post("/game/continue", response_model=GameStateData, summary="Keep Playing After a Win")
async def continue_game(manager: GameManager = Depends(get_manager)):
    with manager.lock:
        manager.session.continue_game()
        return GameStateData(**build_state(manager))


@router.post("/game/reset-best", response_model=GameStateData, summary="Reset Best Scores")
async def reset_best(request_data: ResetBestRequest, manager: GameManager = Depends(get_manager)):
    with manager.lock:
        manager.session.reset_best(request_data.scope)
        return GameStateData(**build_state(manager))


@router.get("/best/global", response_model=GlobalBestData, summary="Best Score Across Players")
async def get_global_best(manager: GameManager = Depends(get_manager)):
    return GlobalBestData(best_global=manager.global_best())

# --- Profile Endpoints ---

@router.get("/profiles", response_model=ProfileListData, summary="List Players")
async def list_profiles(manager: GameManager = Depends(get_manager)):
    with manager.lock:
        players = manager.list_players()
        return ProfileListData(profiles=players, active_id=manager.active_profile_id)


@router.post("/profiles", response_model=Profile, status_code=201, summary="Create and Select a Player")
async def create_profile(request_data: ProfileNameData, manager: GameManager = Depends(get_manager)):
    return manager.create_player(request_data.name)


@router.patch("/profiles/{profile_id}", response_model=Profile, summary="Rename a Player")
async def rename_profile(profile_id: str, request_data: ProfileNameData, manager: GameManager = Depends(get_manager)):
    try:
        return manager.rename_player(profile_id, request_data.name)
    except ProfileNotFoundError as e:
        raise _profile_not_found(e)


@router.delete("/profiles/{profile_id}", response_model=ProfileListData, summary="Delete a Player")
async def delete_profile(profile_id: str, manager: GameManager = Depends(get_manager)):
    """Deletes a player with its saved game and best score. Deleting the last player recreates a default one."""
    with manager.lock:
        try:
            manager.remove_player(profile_id)
        except ProfileNotFoundError as e:
            raise _profile_not_found(e)
        return ProfileListData(profiles=manager.list_players(), active_id=manager.active_profile_id)


@router.put("/profiles/active", response_model=GameStateData, summary="Switch Player")
async def set_active_profile(request_data: ActiveProfileRequest, manager: GameManager = Depends(get_manager)):
    with manager.lock:
        try:
            manager.switch_player(request_data.id)
        except ProfileNotFoundError as e:
            raise _profile_not_found(e)
        return GameStateData(**build_state(manager))

# --- Theme Endpoints ---

@router.get("/theme", response_model=ThemeData, summary="Get Theme Preference")
async def get_theme(manager: GameManager = Depends(get_manager)):
    return ThemeData(theme=manager.theme())


@router.put("/theme", response_model=ThemeData, summary="Set Theme Preference")
async def set_theme(request_data: ThemeData, manager: GameManager = Depends(get_manager)):
    return ThemeData(theme=manager.set_theme(request_data.theme))


@router.post("/theme/toggle", response_model=ThemeData, summary="Toggle Theme Preference")
async def toggle_theme(manager: GameManager = Depends(get_manager)):
    return ThemeData(theme=manager.toggle_theme())

# --- Debug Endpoints ---

@router.post("/debug/quick-merge", response_model=GameStateData, summary="Place Two Mergeable Tiles")
async def debug_quick_merge(request_data: QuickMergeRequest, manager: GameManager = Depends(get_manager)):
    with manager.lock:
        try:
            manager.debug.quick_merge(request_data.value, request_data.direction)
        except DebugDisabledError:
            raise HTTPException(status_code=404, detail="Debug tools are disabled.")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return GameStateData(**build_state(manager))


@router.post("/debug/board", response_model=GameStateData, summary="Replace the Board")
async def debug_set_board(request_data: SetBoardRequest, manager: GameManager = Depends(get_manager)):
    with manager.lock:
        try:
            manager.debug.set_board(request_data.board)
        except DebugDisabledError:
            raise HTTPException(status_code=404, detail="Debug tools are disabled.")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid board: {str(e)}")
        return GameStateData(**build_state(manager))

# --- Application Factory ---

def create_app(
    settings=Settings,
    store: Optional[KeyValueStore] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """
    Builds the API around a game manager.
    Args:
        settings: A Settings-like class; see config.Settings.
        store (KeyValueStore, optional): Overrides the store chosen from settings.
        rng (random.Random, optional): Seeded RNG for reproducible tile spawns.
    """
    global _app_settings
    logging.basicConfig(level=settings.LOG_LEVEL)
    app = FastAPI(
        title="2048 Game API",
        description="Play 2048 with persistent progress for several players. "\
                    "The server keeps each player's board, score, best score and undo history.",
        version="2.0.0"
    )
    _app_settings = settings
    limiter.enabled = settings.RATE_LIMIT_ENABLED
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    if store is None:
        store = create_store(settings.STORE_PATH)
    app.state.manager = GameManager(store, debug_enabled=settings.DEBUG, rng=rng)
    app.include_router(router)
    return app



def __getattr__(name):
    # `uvicorn api:app` builds the default app on first lookup, not at import.
    if name == 'app':
        globals()['app'] = create_app()
        return globals()['app']
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
