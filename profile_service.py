"""
Applies profile mutators and enforces the persistence contract.

Identified profiles: every mutation result is written back to the ProfileStore
as a whole-record replace. Guest profiles live only in this process's registry
and are never written to durable storage.
"""

import logging
import threading
from typing import Optional

from exceptions import UnknownActorError
from models import LogEntry, UserProfile
from profile_mutators import (
    create_guest_profile,
    create_identified_profile,
    delete_log,
    is_guest_id,
    merge_guest_into,
    save_log,
)

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, store):
        self.store = store
        self._guests = {}
        # Serializes read-mutate-write cycles so a delete cannot interleave with a save.
        self._lock = threading.RLock()

    # --- Lookup ---

    def start_guest(self) -> UserProfile:
        guest = create_guest_profile()
        with self._lock:
            self._guests[guest.id] = guest
        logger.info(f"Guest session started: {guest.id}")
        return guest

    def get_profile(self, actor_id: str) -> UserProfile:
        if is_guest_id(actor_id):
            with self._lock:
                guest = self._guests.get(actor_id)
            if guest is None:
                raise UnknownActorError(actor_id)
            return guest

        profile = self.store.load()
        if profile is None or profile.id != actor_id:
            raise UnknownActorError(actor_id)
        return profile

    def _put(self, profile: UserProfile) -> UserProfile:
        if profile.isGuest:
            self._guests[profile.id] = profile
        else:
            self.store.replace(profile)
        return profile

    # --- Mutations ---

    def save_log(self, actor_id: str, entry: LogEntry) -> UserProfile:
        with self._lock:
            updated = save_log(self.get_profile(actor_id), entry)
            self._put(updated)
        logger.info(f"Saved log {entry.id} for {actor_id}: +{entry.pointsEarned} pts, total {updated.totalPoints}")
        return updated

    def delete_log(self, actor_id: str, log_id: str) -> UserProfile:
        with self._lock:
            current = self.get_profile(actor_id)
            updated = delete_log(current, log_id)
            if updated is not current:
                self._put(updated)
        return updated

    # --- Sign-in boundary ---

    def sign_in(self, name: Optional[str] = None, email: str = "", guest_id: Optional[str] = None) -> UserProfile:
        """
        Loads the stored identified profile or mints a fresh one, merging the
        given guest's history into it. The guest is dropped only after the
        merged record has been written, so a failed write loses nothing.
        """
        with self._lock:
            guest = self._guests.get(guest_id) if guest_id else None
            existing = self.store.load()
            if existing is None:
                logger.info("No stored profile, creating a new identified user")
                existing = create_identified_profile(name=name, email=email)

            merged = merge_guest_into(existing, guest)
            self.store.replace(merged)
            if guest is not None:
                del self._guests[guest.id]
        logger.info(f"Signed in as {merged.id}")
        return merged

    def sign_out(self, actor_id: str) -> None:
        """
        A guest signing out only drops its own registry entry. The durable
        record is cleared only by the identified user who owns it.
        """
        with self._lock:
            if is_guest_id(actor_id):
                if self._guests.pop(actor_id, None) is None:
                    raise UnknownActorError(actor_id)
                logger.info(f"Guest {actor_id} signed out")
                return

            self.get_profile(actor_id)
            self.store.clear()
        logger.info(f"Signed out {actor_id}, durable profile cleared")
