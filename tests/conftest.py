import random

import pytest
from fastapi.testclient import TestClient

from api import create_app
from config import Settings
from manager import GameManager
from profiles import ProfileStore
from session import GameSession
from storage import InMemoryStore


class DebugSettings(Settings):
    STORE_PATH = ''
    DEBUG = True
    RATE_LIMIT_ENABLED = False
    LOG_LEVEL = 'WARNING'


class ReleaseSettings(DebugSettings):
    DEBUG = False


class FailingStore(InMemoryStore):
    """Reads work, every write fails like a full or read-only disk."""

    def set(self, key, value):
        raise OSError("quota exceeded")

    def remove(self, key):
        raise OSError("read-only")


def board_with(cells, size=4):
    """Builds an empty board with {(row, col): value} filled in."""
    board = [[0] * size for _ in range(size)]
    for (row, col), value in cells.items():
        board[row][col] = value
    return board


@pytest.fixture()
def rng():
    return random.Random(2048)


@pytest.fixture()
def store():
    return InMemoryStore()


@pytest.fixture()
def profiles(store):
    return ProfileStore(store)


@pytest.fixture()
def player_id(profiles):
    profile_id = profiles.create_profile('Alice')
    profiles.set_active_profile_id(profile_id)
    return profile_id


@pytest.fixture()
def session(profiles, player_id, rng):
    return GameSession.load(player_id, profiles, rng=rng)


@pytest.fixture()
def manager(store, rng):
    return GameManager(store, debug_enabled=True, rng=rng)


@pytest.fixture()
def client(store, rng):
    app = create_app(DebugSettings, store=store, rng=rng)
    return TestClient(app)


@pytest.fixture()
def release_client(store, rng):
    app = create_app(ReleaseSettings, store=store, rng=rng)
    return TestClient(app)
