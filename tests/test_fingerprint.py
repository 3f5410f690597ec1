"""Tests for log entry fingerprints."""

from datetime import datetime, timedelta, timezone

from liftlog.models import LogEntry, SetEntry
from liftlog.sync.fingerprint import (
    FINGERPRINT_LENGTH,
    are_duplicate,
    fingerprint,
    normalize_task_name,
)
from liftlog.utils.timeutils import from_datetime


def _entry(when: datetime, sets: list[tuple[int, float]], task_id: int = 1) -> LogEntry:
    return LogEntry(
        task_id=task_id,
        date=from_datetime(when),
        sets=[SetEntry(reps=r, weight=w) for r, w in sets],
    )


class TestFingerprint:
    """Tests for fingerprint stability and sensitivity."""

    def test_same_day_same_fingerprint(self):
        """Morning and late-evening logs of the same session collapse."""
        morning = _entry(datetime(2024, 1, 5, 8, 0), [(10, 60)])
        evening = _entry(datetime(2024, 1, 5, 23, 0), [(10, 60)])

        assert fingerprint(morning, "Bench Press") == fingerprint(evening, "Bench Press")

    def test_next_day_differs(self):
        """Test that calendar day is part of the identity."""
        day1 = _entry(datetime(2024, 1, 5, 8, 0), [(10, 60)])
        day2 = _entry(datetime(2024, 1, 6, 8, 0), [(10, 60)])

        assert fingerprint(day1, "Bench Press") != fingerprint(day2, "Bench Press")

    def test_set_order_ignored(self):
        """Sets are compared as a sorted multiset."""
        a = _entry(datetime(2024, 1, 5, 8), [(10, 60), (8, 65)])
        b = _entry(datetime(2024, 1, 5, 8), [(8, 65), (10, 60)])

        assert fingerprint(a, "Bench Press") == fingerprint(b, "Bench Press")

    def test_set_content_matters(self):
        """Test that weight and reps change the fingerprint."""
        base = _entry(datetime(2024, 1, 5, 8), [(10, 60)])
        heavier = _entry(datetime(2024, 1, 5, 8), [(10, 62.5)])
        more_reps = _entry(datetime(2024, 1, 5, 8), [(11, 60)])
        extra_set = _entry(datetime(2024, 1, 5, 8), [(10, 60), (10, 60)])

        fp = fingerprint(base, "Bench Press")
        assert fp != fingerprint(heavier, "Bench Press")
        assert fp != fingerprint(more_reps, "Bench Press")
        assert fp != fingerprint(extra_set, "Bench Press")

    def test_task_name_normalized(self):
        """Task names match case- and whitespace-insensitively."""
        entry = _entry(datetime(2024, 1, 5, 8), [(10, 60)])

        assert fingerprint(entry, "Bench Press") == fingerprint(entry, "  bench press ")
        assert fingerprint(entry, "Bench Press") != fingerprint(entry, "Incline Press")

    def test_task_id_not_part_of_identity(self):
        """The same session logged under different local IDs matches."""
        a = _entry(datetime(2024, 1, 5, 8), [(10, 60)], task_id=1)
        b = _entry(datetime(2024, 1, 5, 8), [(10, 60)], task_id=9)

        assert fingerprint(a, "Bench Press") == fingerprint(b, "Bench Press")

    def test_integer_and_float_weights_match(self):
        """60 and 60.0 are the same weight."""
        a = _entry(datetime(2024, 1, 5, 8), [(10, 60)])
        b = _entry(datetime(2024, 1, 5, 8), [(10, 60.0)])

        assert fingerprint(a, "Squat") == fingerprint(b, "Squat")

    def test_explicit_timezone_defines_day(self):
        """The zone decides which calendar day a timestamp belongs to."""
        utc = timezone.utc
        plus_ten = timezone(timedelta(hours=10))
        late = LogEntry(task_id=1, date=from_datetime(datetime(2024, 1, 5, 20, tzinfo=utc)))
        next_morning = LogEntry(task_id=1, date=from_datetime(datetime(2024, 1, 6, 2, tzinfo=utc)))

        assert fingerprint(late, "Row", utc) != fingerprint(next_morning, "Row", utc)
        # 06:00 and 12:00 on Jan 6 at UTC+10
        assert fingerprint(late, "Row", plus_ten) == fingerprint(next_morning, "Row", plus_ten)

    def test_length_and_format(self):
        """Test digest shape."""
        fp = fingerprint(_entry(datetime(2024, 1, 5), [(5, 100)]), "Deadlift")
        assert len(fp) == FINGERPRINT_LENGTH
        int(fp, 16)

    def test_malformed_entry_does_not_raise(self):
        """Unreadable values collapse to zero instead of raising."""
        entry = LogEntry(task_id=1, date=None, sets=[{"reps": None, "weight": "heavy"}])
        assert len(fingerprint(entry, None)) == FINGERPRINT_LENGTH

    def test_huge_date_does_not_raise(self):
        """Out-of-range timestamps still fingerprint."""
        entry = LogEntry(task_id=1, date=10**20, sets=[SetEntry(1, 1)])
        assert len(fingerprint(entry, "X")) == FINGERPRINT_LENGTH


class TestAreDuplicate:
    """Tests for exact duplicate comparison."""

    def test_agrees_with_fingerprint(self):
        """Entries with equal canonical forms are duplicates."""
        a = _entry(datetime(2024, 1, 5, 8), [(10, 60), (8, 65)])
        b = _entry(datetime(2024, 1, 5, 21), [(8, 65), (10, 60)], task_id=4)

        assert are_duplicate(a, b, "Bench Press", "bench press")
        assert fingerprint(a, "Bench Press") == fingerprint(b, "bench press")

    def test_different_entries(self):
        """Test non-duplicates."""
        a = _entry(datetime(2024, 1, 5, 8), [(10, 60)])
        b = _entry(datetime(2024, 1, 5, 8), [(10, 65)])

        assert not are_duplicate(a, b, "Bench Press", "Bench Press")


class TestNormalizeTaskName:
    """Tests for task name normalization."""

    def test_normalize(self):
        assert normalize_task_name("  Bench PRESS ") == "bench press"
        assert normalize_task_name(None) == ""
