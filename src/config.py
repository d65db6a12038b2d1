# config.py
# Game-balance constants, storage keys and environment-driven settings.

import os

BOARD_SIZE = 4
TARGET = 2048
INITIAL_TILES = 2

# Undo depth is a hard cap, not a runtime option.
UNDO_DEPTH = 3

SPAWN_TWO_PROBABILITY = 0.9
SPAWN_FOUR_PROBABILITY = 0.1

DEFAULT_PLAYER_NAME = 'Player 1'
FALLBACK_PLAYER_NAME = 'Player'

THEMES = ('light', 'dark')
DEFAULT_THEME = 'light'

# --- Storage keys ---

PLAYERS_KEY = '2048:players'
CURRENT_PLAYER_KEY = '2048:current-player'
GLOBAL_BEST_KEY = '2048:best'
THEME_KEY = '2048:theme'


def get_player_keys(player_id: str) -> dict:
    """Returns the per-player storage keys for the snapshot and best-score records."""
    base = f'2048:{player_id}'
    return {
        'state': f'{base}:state',
        'best': f'{base}:best',
    }


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Settings:
    # JSON file backing the key-value store. Empty keeps everything in memory.
    STORE_PATH = os.environ.get('GAME_STORE_PATH', '2048-save.json')
    # Exposes the debug port (quick merge / set board).
    DEBUG = _env_flag('GAME_DEBUG', '0')
    RATE_LIMIT = os.environ.get('GAME_RATE_LIMIT', '100/minute')
    RATE_LIMIT_ENABLED = _env_flag('GAME_RATE_LIMIT_ENABLED', '1')
    LOG_LEVEL = os.environ.get('GAME_LOG_LEVEL', 'INFO')
