# cli_driver.py
# This file is intended to be run to play the 2048 game on the CLI.
# Progress is saved to the configured store, so a game can be resumed later.

from typing import Optional
import logging

from config import Settings
from core import DIRECTION, GameProgressState
from manager import GameManager
from session import GameSession
from storage import create_store

COMMANDS = "W/A/S/D move, U undo, N new game, C continue, P switch player, Q quit"


def main(settings=Settings, manager: Optional[GameManager] = None, read=input):
    logging.basicConfig(level=settings.LOG_LEVEL)
    if manager is None:
        manager = GameManager(create_store(settings.STORE_PATH), debug_enabled=settings.DEBUG)

    print(f"Playing as {manager.active_profile.name}")
    display_board_state(manager.session, manager.global_best())

    direction_map = {'W': DIRECTION.UP, 'A': DIRECTION.LEFT, 'S': DIRECTION.DOWN, 'D': DIRECTION.RIGHT}

    while True:
        session = manager.session
        try:
            command = read(f"Enter command ({COMMANDS}): ").strip().upper()
        except EOFError:
            command = 'Q'

        if command == 'Q':
            print("Quitting game. Progress saved.")
            break

        if command in direction_map:
            result = session.apply_move(direction_map[command])
            if result is None:
                if session.won:
                    print("You reached the target! Press C to keep playing or N for a new game.")
                else:
                    print("No more moves possible. Press U to undo or N for a new game.")
                continue
            if not result.moved:
                print("Move did not change the board. Try a different direction.")
                continue
        elif command == 'U':
            if not session.undo():
                print("Nothing to undo.")
                continue
        elif command == 'N':
            session.new_game()
        elif command == 'C':
            session.continue_game()
        elif command == 'P':
            switch_player(manager, read)
        else:
            print("Invalid input.")
            continue

        display_board_state(manager.session, manager.global_best())

    return manager


def switch_player(manager: GameManager, read=input):
    """Lists profiles and switches to the chosen one, or creates a new profile."""
    players = manager.list_players()
    for index, profile in enumerate(players, start=1):
        marker = '*' if profile.id == manager.active_profile_id else ' '
        print(f"{marker} {index}. {profile.name}")
    choice = read("Player number, or a new name: ").strip()
    if choice.isdigit() and 1 <= int(choice) <= len(players):
        manager.switch_player(players[int(choice) - 1].id)
    elif choice:
        manager.create_player(choice)
    print(f"Playing as {manager.active_profile.name}")


# --- Display Function ---
def display_board_state(session: GameSession, best_global: int):
    """Prints the board, scores, and game status to the console."""
    print(f"\nScore: {session.score}  Best: {session.best}  All players: {best_global}")
    status_message = {
        GameProgressState.IN_PROGRESS: f"Status: {session.progress.name}",
        GameProgressState.GAME_WON: "YOU WON!",
        GameProgressState.GAME_OVER: "GAME OVER!"
    }
    print(status_message[session.progress])

    for row in session.board:
        print("\t".join(str(value) if value else '.' for value in row))
    print("-" * (len(session.board) * 6)) # Adjust width based on board size


if __name__ == "__main__":
    main()
