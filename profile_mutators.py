"""
Pure profile transitions: (current profile, input) -> new profile.

Nothing here touches storage. The caller decides whether the returned profile
is persisted (identified users) or kept in memory only (guests).
"""

import logging
import uuid
from typing import Optional

from models import AnalysisResult, LogEntry, MediaType, UserProfile, points_for_score
from timezone_utils import days_between_local, utc_now_iso

logger = logging.getLogger(__name__)

GUEST_ID_PREFIX = "guest-"
GUEST_NAME = "Guest Explorer"
DEFAULT_USER_NAME = "Eco Warrior"
AVATAR_URL_TEMPLATE = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


# --- Factories ---

def create_guest_profile() -> UserProfile:
    guest_id = f"{GUEST_ID_PREFIX}{uuid.uuid4().hex}"
    return UserProfile(
        id=guest_id,
        name=GUEST_NAME,
        email="",
        avatarUrl=AVATAR_URL_TEMPLATE.format(seed=guest_id),
        totalPoints=0,
        streakDays=1,
        isGuest=True,
        logs=[],
    )


def create_identified_profile(name: Optional[str] = None, email: str = "", profile_id: Optional[str] = None) -> UserProfile:
    profile_id = profile_id or str(uuid.uuid4())
    return UserProfile(
        id=profile_id,
        name=name or DEFAULT_USER_NAME,
        email=email or "",
        avatarUrl=AVATAR_URL_TEMPLATE.format(seed=profile_id),
        totalPoints=0,
        streakDays=1,
        isGuest=False,
        logs=[],
    )


def is_guest_id(profile_id: str) -> bool:
    return profile_id.startswith(GUEST_ID_PREFIX)


def new_log_entry(result: AnalysisResult, media_type: MediaType, visualization_url: Optional[str] = None,
                  log_id: Optional[str] = None, date: Optional[str] = None) -> LogEntry:
    """Builds the entry for a committed session. Id and timestamp are assigned at commit time."""
    return LogEntry(
        id=log_id or str(uuid.uuid4()),
        date=date or utc_now_iso(),
        mediaType=media_type,
        result=result,
        visualizationUrl=visualization_url,
        pointsEarned=points_for_score(result.totalCarbonScore),
    )


# --- Mutators ---

def next_streak(profile: UserProfile, entry: LogEntry) -> int:
    """
    Streak after committing `entry`, judged against the newest existing log
    on the local calendar: same day keeps it, the next day extends it, any
    other gap starts over at 1.
    """
    if not profile.logs:
        return profile.streakDays
    gap = days_between_local(profile.logs[0].date, entry.date)
    if gap == 0:
        return profile.streakDays
    if gap == 1:
        return profile.streakDays + 1
    return 1


def save_log(profile: UserProfile, entry: LogEntry) -> UserProfile:
    """Prepends the entry and adds its points."""
    return profile.model_copy(update={
        'totalPoints': profile.totalPoints + entry.pointsEarned,
        'streakDays': max(1, next_streak(profile, entry)),
        'logs': [entry, *profile.logs],
    })


def delete_log(profile: UserProfile, log_id: str) -> UserProfile:
    """Removes the entry and its points. An unknown id returns the profile unchanged."""
    entry = profile.find_log(log_id)
    if entry is None:
        logger.info(f"Delete of unknown log {log_id} for profile {profile.id} ignored")
        return profile

    return profile.model_copy(update={
        'totalPoints': max(0, profile.totalPoints - entry.pointsEarned),
        'logs': [log for log in profile.logs if log.id != log_id],
    })


def merge_guest_into(identified: UserProfile, guest: Optional[UserProfile]) -> UserProfile:
    """
    Carries a guest's history into an identified profile: guest logs go first,
    point totals are summed. A guest with no logs is a no-op.

    Not idempotent: merging the same guest twice counts its points twice, so
    callers must drop the guest instance once this returns.
    """
    if guest is None or not guest.logs:
        logger.info(f"Nothing to merge into profile {identified.id}")
        return identified
    if not guest.isGuest:
        raise ValueError(f"Profile {guest.id} is not a guest profile")

    logger.info(f"Merging {len(guest.logs)} guest logs ({guest.totalPoints} pts) into profile {identified.id}")
    return identified.model_copy(update={
        'totalPoints': identified.totalPoints + guest.totalPoints,
        'logs': [*guest.logs, *identified.logs],
    })
