import pytest

from config import DEFAULT_PLAYER_NAME
from core import DIRECTION
from debug import DebugDisabledError
from manager import GameManager
from profiles import ProfileNotFoundError

from conftest import board_with


def test_first_run_creates_default_player(manager):
    players = manager.list_players()
    assert [p.name for p in players] == [DEFAULT_PLAYER_NAME]
    assert manager.active_profile_id == players[0].id


def test_sessions_are_independent(manager):
    first = manager.session
    first.debug_set_board(board_with({(0, 0): 2, (0, 1): 2}))
    first.apply_move(DIRECTION.LEFT)

    bob = manager.create_player('Bob')
    assert manager.active_profile_id == bob.id
    assert manager.session.profile_id == bob.id
    assert manager.session.score == 0

    manager.switch_player(first.profile_id)
    assert manager.session.board == first.board
    assert manager.session.score == first.score


def test_switch_to_unknown_player(manager):
    active = manager.active_profile_id
    with pytest.raises(ProfileNotFoundError):
        manager.switch_player('nobody')
    assert manager.active_profile_id == active


def test_removing_active_player_selects_next(manager):
    first_id = manager.active_profile_id
    bob = manager.create_player('Bob')
    manager.remove_player(bob.id)
    assert manager.active_profile_id == first_id
    assert manager.session.profile_id == first_id


def test_removing_last_player_recreates_default(manager):
    only = manager.active_profile_id
    manager.session.debug_set_board(board_with({(0, 0): 512}))
    manager.remove_player(only)
    players = manager.list_players()
    assert len(players) == 1
    assert players[0].id != only
    assert players[0].name == DEFAULT_PLAYER_NAME
    assert manager.session.score == 0
    # The floor keeps the deleted player's best.
    assert manager.global_best() == 512


def test_rename_player(manager):
    profile = manager.rename_player(manager.active_profile_id, 'Zed')
    assert profile.name == 'Zed'
    assert manager.active_profile.name == 'Zed'


def test_state_survives_new_manager(store, manager):
    manager.session.debug_set_board(board_with({(1, 1): 64}))
    bob = manager.create_player('Bob')
    again = GameManager(store)
    assert again.active_profile_id == bob.id
    assert [p.name for p in again.list_players()] == ['Bob', DEFAULT_PLAYER_NAME]


def test_stale_active_pointer_is_repaired(store, manager):
    players = manager.list_players()
    store.set('2048:current-player', 'deleted')
    assert manager.active_profile_id == players[0].id


def test_theme_toggle(manager):
    assert manager.theme() == 'light'
    assert manager.toggle_theme() == 'dark'
    assert manager.toggle_theme() == 'light'
    assert manager.set_theme('dark') == 'dark'


def test_debug_follows_flag(store):
    assert GameManager(store, debug_enabled=True).debug.enabled
    with pytest.raises(DebugDisabledError):
        GameManager(store).debug.quick_merge(2, DIRECTION.LEFT)


def test_corrupt_best_records_do_not_break_global_best(store, manager):
    player = manager.list_players()[0]
    store.set(f'2048:{player.id}:best', 'NaN')
    store.set('2048:best', 'Infinity')
    again = GameManager(store)
    assert again.global_best() == 0
    assert again.session.best == 0
