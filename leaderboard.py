"""
Ranking projection: the current user's points against a comparison set of
other participants. Nothing here is stored; the view is rebuilt on demand.
"""

from typing import Iterable, List, Protocol

from models import LeaderboardEntry, UserProfile


class ComparisonSource(Protocol):
    """Supplies the other participants a profile is ranked against."""

    def participants(self) -> List[LeaderboardEntry]:
        ...


DEFAULT_COMPARISON_SET = [
    LeaderboardEntry(id='2', name='Alice Green', avatarUrl='https://api.dicebear.com/7.x/avataaars/svg?seed=Alice', points=450),
    LeaderboardEntry(id='3', name='Bob Solar', avatarUrl='https://api.dicebear.com/7.x/avataaars/svg?seed=Bob', points=320),
    LeaderboardEntry(id='4', name='Charlie Compost', avatarUrl='https://api.dicebear.com/7.x/avataaars/svg?seed=Charlie', points=580),
    LeaderboardEntry(id='5', name='Dana Wind', avatarUrl='https://api.dicebear.com/7.x/avataaars/svg?seed=Dana', points=120),
]


class StaticComparisonSource:
    def __init__(self, entries: Iterable[LeaderboardEntry] = None):
        self._entries = list(entries if entries is not None else DEFAULT_COMPARISON_SET)

    def participants(self) -> List[LeaderboardEntry]:
        return [entry.model_copy() for entry in self._entries]


def rankings(profile: UserProfile, comparison_set: Iterable[LeaderboardEntry]) -> List[LeaderboardEntry]:
    """
    Ranks the profile among the comparison set by points, highest first.
    Ties keep input order (comparison set first, then the current user) and
    ranks are contiguous from 1. Guests are ranked like anyone else.
    """
    current = LeaderboardEntry(
        id=profile.id,
        name=profile.name,
        avatarUrl=profile.avatarUrl,
        points=profile.totalPoints,
        isCurrentUser=True,
    )
    others = [
        entry.model_copy(update={'isCurrentUser': False})
        for entry in comparison_set
        if entry.id != profile.id
    ]

    # sorted() is stable, so equal points keep their input order
    ordered = sorted([*others, current], key=lambda e: -e.points)
    return [entry.model_copy(update={'rank': index + 1}) for index, entry in enumerate(ordered)]
