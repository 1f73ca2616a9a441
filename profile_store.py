"""
Durable storage for the single identified profile.

The store holds exactly one whole record under a fixed Redis key. Reads return
the full profile, writes replace it, and there are no partial updates, so the
only rule is that the last write wins. Records are wrapped in a versioned
envelope and older shapes are migrated on read.
"""

import json
import logging
from typing import Optional

import redis
from pydantic import ValidationError

from exceptions import ProfileStoreError
from models import UserProfile, points_for_score

logger = logging.getLogger(__name__)

DEFAULT_STORE_KEY = "greenmirror_user"
SCHEMA_VERSION = 1


def _migrate_legacy_profile(data: dict) -> dict:
    """Brings a bare, pre-envelope profile up to schema version 1."""
    data = dict(data)
    data.setdefault('isGuest', False)
    data.setdefault('streakDays', 1)
    data.setdefault('email', "")
    data.setdefault('avatarUrl', "")
    logs = []
    for log in data.get('logs') or []:
        log = dict(log)
        # Legacy scores were plain numbers and may be fractional.
        result = dict(log.get('result') or {})
        score = min(100, max(0, round(float(result.get('totalCarbonScore', 100)))))
        result['totalCarbonScore'] = score
        log['result'] = result
        log['pointsEarned'] = points_for_score(score)
        logs.append(log)
    data['logs'] = logs
    data['totalPoints'] = sum(log['pointsEarned'] for log in logs)
    return data


MIGRATIONS = {
    # version found -> step producing the next version's profile payload
    0: _migrate_legacy_profile,
}


class ProfileStore:
    def __init__(self, redis_client, key: str = DEFAULT_STORE_KEY):
        self.redis = redis_client
        self.key = key

    def load(self) -> Optional[UserProfile]:
        """Returns the stored profile, or None when no identified user exists yet."""
        try:
            raw = self.redis.get(self.key)
        except redis.exceptions.RedisError as e:
            logger.error(f"Failed to read profile record '{self.key}': {e}", exc_info=True)
            raise ProfileStoreError("Profile storage is unavailable") from e

        if raw is None:
            return None

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Profile record '{self.key}' is not valid JSON: {e}")
            raise ProfileStoreError("Stored profile is unreadable") from e

        if isinstance(document, dict) and 'schemaVersion' in document:
            version = document.get('schemaVersion')
            payload = document.get('profile')
        else:
            version, payload = 0, document

        if not isinstance(version, int) or version > SCHEMA_VERSION:
            raise ProfileStoreError(f"Unsupported profile schema version: {version}")

        while version < SCHEMA_VERSION:
            logger.info(f"Migrating profile record '{self.key}' from schema version {version}")
            try:
                payload = MIGRATIONS[version](payload)
            except (TypeError, ValueError, AttributeError) as e:
                logger.error(f"Profile record '{self.key}' could not be migrated: {e}")
                raise ProfileStoreError("Stored profile is unreadable") from e
            version += 1

        try:
            return UserProfile.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Stored profile failed validation: {e}")
            raise ProfileStoreError("Stored profile is unreadable") from e

    def replace(self, profile: UserProfile) -> None:
        """Writes the whole record. Guest profiles are never persisted."""
        if profile.isGuest:
            raise ProfileStoreError("Guest profiles cannot be persisted")

        document = {'schemaVersion': SCHEMA_VERSION, 'profile': profile.model_dump(mode='json')}
        try:
            self.redis.set(self.key, json.dumps(document))
        except redis.exceptions.RedisError as e:
            logger.error(f"Failed to write profile record '{self.key}': {e}", exc_info=True)
            raise ProfileStoreError("Profile storage is unavailable") from e
        logger.info(f"Profile {profile.id} written ({profile.totalPoints} pts, {len(profile.logs)} logs)")

    def clear(self) -> None:
        try:
            self.redis.delete(self.key)
        except redis.exceptions.RedisError as e:
            logger.error(f"Failed to clear profile record '{self.key}': {e}", exc_info=True)
            raise ProfileStoreError("Profile storage is unavailable") from e
        logger.info(f"Profile record '{self.key}' cleared")
