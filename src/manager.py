# manager.py
# Owns the active player's session and the profile lifecycle around it.

from typing import List, Optional
import logging
import random
import threading

from config import DEFAULT_PLAYER_NAME, TARGET, THEMES
from debug import DebugTools
from profiles import GlobalBest, Profile, ProfileStore
from session import GameSession
from storage import KeyValueStore

logger = logging.getLogger(__name__)


class GameManager:
    """
    Entry point for presentation layers.

    All transitions take the same lock, so switching players can never interleave
    with a move on the outgoing or incoming session.
    """

    def __init__(
        self,
        store: KeyValueStore,
        debug_enabled: bool = False,
        rng: Optional[random.Random] = None,
        target: int = TARGET,
    ) -> None:
        self.profiles = ProfileStore(store)
        self.global_best_aggregate = GlobalBest(self.profiles)
        self.debug_enabled = debug_enabled
        self.rng = rng
        self.target = target
        self.lock = threading.RLock()
        self._session: Optional[GameSession] = None

    def _ensure_active_profile(self) -> str:
        profiles = self.profiles.list_profiles()
        if not profiles:
            profile_id = self.profiles.create_profile(DEFAULT_PLAYER_NAME)
            self.profiles.set_active_profile_id(profile_id)
            return profile_id
        active = self.profiles.get_active_profile_id()
        if not self.profiles.has_profile(active):
            active = profiles[0].id
            self.profiles.set_active_profile_id(active)
        return active

    @property
    def active_profile_id(self) -> str:
        with self.lock:
            return self._ensure_active_profile()

    @property
    def active_profile(self) -> Profile:
        return self.profiles.get_profile(self.active_profile_id)

    @property
    def session(self) -> GameSession:
        with self.lock:
            active = self._ensure_active_profile()
            if self._session is None or self._session.profile_id != active:
                self._session = GameSession.load(active, self.profiles, rng=self.rng, target=self.target)
            return self._session

    @property
    def debug(self) -> DebugTools:
        return DebugTools(self.session, enabled=self.debug_enabled)

    def list_players(self) -> List[Profile]:
        with self.lock:
            self._ensure_active_profile()
            return self.profiles.list_profiles()

    def switch_player(self, profile_id: str) -> GameSession:
        with self.lock:
            # Sessions persist after every transition; nothing is left to flush.
            self.profiles.set_active_profile_id(profile_id)
            self._session = None
            logger.info("Switched to player %s", profile_id)
            return self.session

    def create_player(self, name: str) -> Profile:
        with self.lock:
            profile_id = self.profiles.create_profile(name)
            self.switch_player(profile_id)
            return self.profiles.get_profile(profile_id)

    def rename_player(self, profile_id: str, name: str) -> Profile:
        with self.lock:
            return self.profiles.rename_profile(profile_id, name)

    def remove_player(self, profile_id: str) -> None:
        """Deletes a player; the last one removed is replaced by a fresh default profile."""
        with self.lock:
            self.profiles.remove_profile(profile_id)
            if self._session is not None and self._session.profile_id == profile_id:
                self._session = None
            self._ensure_active_profile()

    def global_best(self) -> int:
        return self.global_best_aggregate.value()

    def theme(self) -> str:
        return self.profiles.get_theme()

    def set_theme(self, theme: str) -> str:
        return self.profiles.set_theme(theme)

    def toggle_theme(self) -> str:
        current = self.profiles.get_theme()
        return self.profiles.set_theme(THEMES[1] if current == THEMES[0] else THEMES[0])
