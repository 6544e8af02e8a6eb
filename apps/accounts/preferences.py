"""Device-local user preferences and onboarding flags."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields

from shared.infrastructure.kv_store import (
    ONBOARDING_SEEN_KEY,
    USER_PREFERENCES_KEY,
    PersistedKeyValueStore,
    scoped_key,
)

# Stored keys keep the camelCase names the mobile client has always written
_STORED_NAMES = {
    "auto_save_search": "autoSaveSearch",
    "language": "language",
    "theme": "theme",
}


@dataclass
class UserPreferences:
    auto_save_search: bool = True
    language: str = "ar"
    theme: str = "light"

    @classmethod
    def from_stored(cls, data) -> "UserPreferences":
        if not isinstance(data, dict):
            return cls()
        known = {f.name for f in fields(cls)}
        values = {
            name: data[stored]
            for name, stored in _STORED_NAMES.items()
            if name in known and stored in data
        }
        return cls(**values)

    def to_stored(self) -> dict:
        return {_STORED_NAMES[name]: value for name, value in asdict(self).items()}


class PreferencesStore:
    """Preferences are per device; onboarding flags are per principal."""

    def __init__(self, store: PersistedKeyValueStore):
        self.store = store

    def load(self) -> UserPreferences:
        return UserPreferences.from_stored(self.store.get(USER_PREFERENCES_KEY))

    def save(self, preferences: UserPreferences) -> None:
        self.store.set(USER_PREFERENCES_KEY, preferences.to_stored())

    def update(self, **changes) -> UserPreferences:
        preferences = self.load()
        for name, value in changes.items():
            if name not in _STORED_NAMES:
                raise AttributeError(f"Unknown preference: {name}")
            setattr(preferences, name, value)
        self.save(preferences)
        return preferences

    def has_seen_onboarding(self, principal_id) -> bool:
        return bool(self.store.get(scoped_key(ONBOARDING_SEEN_KEY, principal_id), False))

    def mark_onboarding_seen(self, principal_id) -> None:
        self.store.set(scoped_key(ONBOARDING_SEEN_KEY, principal_id), True)

    def reset_onboarding(self, principal_id) -> None:
        self.store.remove(scoped_key(ONBOARDING_SEEN_KEY, principal_id))
