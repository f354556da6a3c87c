"""User profile persistence (one profile per installation)."""

import logging
import sqlite3
from typing import Optional

from pydantic import ValidationError

from hydr8.core.database import USER_PROFILE_KEY, DocumentStore
from hydr8.core.models import UserProfile

log = logging.getLogger("hydr8.profile")


class ProfileStore:

    def __init__(self, store: DocumentStore):
        self._store = store
        self.profile: Optional[UserProfile] = None
        self.load()

    def load(self) -> Optional[UserProfile]:
        try:
            raw = self._store.get(USER_PROFILE_KEY)
        except sqlite3.Error as e:
            log.error("Could not read profile: %s", e)
            raw = None
        if raw is None:
            self.profile = None
            return None
        try:
            self.profile = UserProfile.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            log.warning("Error decoding profile: %s", e)
            self.profile = None
        return self.profile

    def save(self, profile: UserProfile) -> UserProfile:
        self.profile = profile
        try:
            self._store.put(USER_PROFILE_KEY, profile.model_dump_json())
        except sqlite3.Error as e:
            log.error("Error encoding profile: %s", e)
        return profile

    def clear(self) -> None:
        self.profile = None
        try:
            self._store.delete(USER_PROFILE_KEY)
        except sqlite3.Error as e:
            log.error("Could not remove profile: %s", e)
