# profiles.py
# Player profiles, best-score records and the cross-profile best aggregate.

from typing import List, Optional
import logging
import uuid

from pydantic import BaseModel, Field, ValidationError

from config import (
    CURRENT_PLAYER_KEY,
    DEFAULT_THEME,
    FALLBACK_PLAYER_NAME,
    GLOBAL_BEST_KEY,
    PLAYERS_KEY,
    THEME_KEY,
    THEMES,
    get_player_keys,
)
from storage import KeyValueStore, read_int, read_json, safe_remove, safe_write

logger = logging.getLogger(__name__)


class ProfileNotFoundError(KeyError):
    """Raised when a profile id is not in the store."""


class Profile(BaseModel):
    id: str = Field(..., min_length=1, description="Opaque, globally unique profile id.")
    name: str = Field(..., min_length=1, description="Display name, never blank.")


def new_profile_id() -> str:
    return uuid.uuid4().hex


class ProfileStore:
    """
    Maps player ids to profiles, session snapshots and best-score records.

    Everything is read back from the key-value store on each call; the store is the
    only source of truth, so two stores over the same backend always agree.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    # --- Profiles ---

    def list_profiles(self) -> List[Profile]:
        raw = read_json(self.store, PLAYERS_KEY, [])
        if not isinstance(raw, list):
            return []
        profiles = []
        for item in raw:
            try:
                profiles.append(Profile.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed profile record: %r", item)
        return profiles

    def _save_profiles(self, profiles: List[Profile]) -> None:
        safe_write(self.store, PLAYERS_KEY, [p.model_dump() for p in profiles])

    def get_profile(self, profile_id: str) -> Profile:
        for profile in self.list_profiles():
            if profile.id == profile_id:
                return profile
        raise ProfileNotFoundError(profile_id)

    def has_profile(self, profile_id: Optional[str]) -> bool:
        return profile_id is not None and any(p.id == profile_id for p in self.list_profiles())

    def create_profile(self, name: str) -> str:
        """Creates a profile listed first; a blank name falls back to a generic one."""
        profile = Profile(id=new_profile_id(), name=(name or '').strip() or FALLBACK_PLAYER_NAME)
        self._save_profiles([profile] + self.list_profiles())
        logger.info("Created profile %s (%s)", profile.id, profile.name)
        return profile.id

    def rename_profile(self, profile_id: str, name: str) -> Profile:
        profiles = self.list_profiles()
        for index, profile in enumerate(profiles):
            if profile.id == profile_id:
                new_name = (name or '').strip()
                if new_name:
                    profiles[index] = profile.model_copy(update={'name': new_name})
                    self._save_profiles(profiles)
                return profiles[index]
        raise ProfileNotFoundError(profile_id)

    def remove_profile(self, profile_id: str) -> None:
        """Deletes the profile with its snapshot and best record; the global floor is kept."""
        profiles = self.list_profiles()
        remaining = [p for p in profiles if p.id != profile_id]
        if len(remaining) == len(profiles):
            raise ProfileNotFoundError(profile_id)
        self._save_profiles(remaining)
        keys = get_player_keys(profile_id)
        safe_remove(self.store, keys['state'])
        safe_remove(self.store, keys['best'])
        if self.get_active_profile_id() == profile_id:
            safe_remove(self.store, CURRENT_PLAYER_KEY)
        logger.info("Removed profile %s", profile_id)

    def get_active_profile_id(self) -> Optional[str]:
        return self.store.get(CURRENT_PLAYER_KEY)

    def set_active_profile_id(self, profile_id: str) -> None:
        if not self.has_profile(profile_id):
            raise ProfileNotFoundError(profile_id)
        safe_write(self.store, CURRENT_PLAYER_KEY, profile_id)

    # --- Session snapshots ---

    def load_snapshot_raw(self, profile_id: str) -> Optional[str]:
        return self.store.get(get_player_keys(profile_id)['state'])

    def save_snapshot_raw(self, profile_id: str, raw: str) -> bool:
        return safe_write(self.store, get_player_keys(profile_id)['state'], raw)

    # --- Best scores ---

    def get_best_score(self, profile_id: str) -> int:
        return read_int(self.store, get_player_keys(profile_id)['best'])

    def save_best_score(self, profile_id: str, value: int) -> bool:
        return safe_write(self.store, get_player_keys(profile_id)['best'], int(value))

    def list_best_scores(self) -> List[int]:
        return [self.get_best_score(p.id) for p in self.list_profiles()]

    def reset_all_best_scores(self) -> None:
        for profile in self.list_profiles():
            self.save_best_score(profile.id, 0)

    # --- Preferences ---

    def get_theme(self) -> str:
        theme = self.store.get(THEME_KEY)
        return theme if theme in THEMES else DEFAULT_THEME

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"Theme must be one of {', '.join(THEMES)}.")
        safe_write(self.store, THEME_KEY, theme)
        return theme


class GlobalBest:
    """Highest best score across profiles, bounded below by a persisted floor."""

    def __init__(self, profiles: ProfileStore) -> None:
        self.profiles = profiles

    def floor(self) -> int:
        return read_int(self.profiles.store, GLOBAL_BEST_KEY)

    def value(self) -> int:
        # Recomputed on every read so deletions are reflected immediately.
        return max(self.profiles.list_best_scores() + [self.floor()])

    def raise_floor(self, score: int) -> None:
        if score > self.floor():
            safe_write(self.profiles.store, GLOBAL_BEST_KEY, int(score))

    def reset(self) -> None:
        self.profiles.reset_all_best_scores()
        safe_write(self.profiles.store, GLOBAL_BEST_KEY, 0)
