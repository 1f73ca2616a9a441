import pytest

from models import MainCategory
from profile_mutators import (
    GUEST_ID_PREFIX,
    create_guest_profile,
    create_identified_profile,
    delete_log,
    is_guest_id,
    merge_guest_into,
    next_streak,
    save_log,
)


@pytest.fixture(autouse=True)
def _tz(local_tz):
    pass


def test_guest_profile_defaults():
    guest = create_guest_profile()
    assert guest.id.startswith(GUEST_ID_PREFIX)
    assert is_guest_id(guest.id)
    assert guest.isGuest is True
    assert guest.totalPoints == 0
    assert guest.streakDays == 1
    assert guest.logs == []


def test_guest_ids_are_unique():
    assert create_guest_profile().id != create_guest_profile().id


def test_save_prepends_and_adds_points(make_entry):
    guest = create_guest_profile()
    entry = make_entry(score=20, category=MainCategory.WASTE)

    updated = save_log(guest, entry)

    assert updated.totalPoints == 80
    assert updated.logs[0] == entry
    assert guest.totalPoints == 0  # input left untouched


def test_save_newest_first(make_entry):
    first, second = make_entry(), make_entry()
    profile = save_log(save_log(create_guest_profile(), first), second)
    assert [log.id for log in profile.logs] == [second.id, first.id]


def test_high_score_still_earns_floor(make_entry):
    profile = save_log(create_guest_profile(), make_entry(score=95))
    assert profile.totalPoints == 10


def test_delete_removes_entry_and_points(make_entry):
    a, b = make_entry(score=20), make_entry(score=50)
    profile = save_log(save_log(create_guest_profile(), a), b)

    updated = delete_log(profile, a.id)

    assert updated.totalPoints == 50
    assert [log.id for log in updated.logs] == [b.id]


def test_delete_unknown_id_is_noop(make_entry):
    profile = save_log(create_guest_profile(), make_entry())
    assert delete_log(profile, "missing") is profile


def test_delete_twice_equals_delete_once(make_entry):
    entry = make_entry()
    profile = save_log(create_guest_profile(), entry)
    once = delete_log(profile, entry.id)
    assert delete_log(once, entry.id) == once


def test_delete_floors_points_at_zero(make_entry):
    entry = make_entry(score=0)
    desynced = save_log(create_guest_profile(), entry).model_copy(update={'totalPoints': 30})
    assert delete_log(desynced, entry.id).totalPoints == 0


def test_points_match_sum_of_logs_after_mixed_mutations(make_entry):
    entries = [make_entry(score=s) for s in (0, 20, 95, 60)]
    profile = create_guest_profile()
    for entry in entries:
        profile = save_log(profile, entry)
    profile = delete_log(profile, entries[1].id)
    profile = delete_log(profile, "unknown")

    assert profile.totalPoints == sum(log.pointsEarned for log in profile.logs) == 100 + 10 + 40


def test_merge_puts_guest_logs_first_and_sums_points(make_entry):
    identified = save_log(create_identified_profile("Ana", "ana@example.com"), make_entry(score=0))
    guest = save_log(create_guest_profile(), make_entry(score=20))

    merged = merge_guest_into(identified, guest)

    assert merged.totalPoints == 180
    assert [log.id for log in merged.logs] == [guest.logs[0].id, identified.logs[0].id]
    assert merged.id == identified.id
    assert merged.isGuest is False


def test_merge_empty_guest_is_noop():
    identified = create_identified_profile("Ana")
    assert merge_guest_into(identified, create_guest_profile()) is identified
    assert merge_guest_into(identified, None) is identified


def test_merge_rejects_non_guest(make_entry):
    identified = create_identified_profile("Ana")
    other = save_log(create_identified_profile("Bo"), make_entry())
    with pytest.raises(ValueError):
        merge_guest_into(identified, other)


def test_streak_same_local_day_unchanged(make_entry):
    profile = save_log(create_guest_profile(), make_entry(date="2026-10-19T01:00:00+00:00"))
    later = make_entry(date="2026-10-19T15:00:00+00:00")  # 22:00 in Jakarta, same day
    assert next_streak(profile, later) == 1


def test_streak_next_local_day_extends(make_entry):
    profile = save_log(create_guest_profile(), make_entry(date="2026-10-18T05:00:00+00:00"))
    profile = save_log(profile, make_entry(date="2026-10-19T05:00:00+00:00"))
    assert profile.streakDays == 2


def test_streak_gap_resets(make_entry):
    profile = save_log(create_guest_profile(), make_entry(date="2026-10-10T05:00:00+00:00"))
    profile = profile.model_copy(update={'streakDays': 5})
    profile = save_log(profile, make_entry(date="2026-10-19T05:00:00+00:00"))
    assert profile.streakDays == 1


def test_streak_follows_local_calendar(make_entry):
    # 2026-10-18T18:00Z is already 2026-10-19 01:00 in Jakarta
    profile = save_log(create_guest_profile(), make_entry(date="2026-10-18T18:00:00+00:00"))
    assert next_streak(profile, make_entry(date="2026-10-19T10:00:00+00:00")) == 1
