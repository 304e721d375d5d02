"""
Tests for the Athlete model and manager.
"""
from datetime import date, timedelta

import pytest

from apps.athletes.models import Athlete


@pytest.mark.django_db
class TestAthleteManager:
    """Test AthleteManager lookups."""

    def test_matching_ignores_case_and_whitespace(self, athlete, coach_user):
        """Test that matching compares trimmed, case-insensitive names."""
        found = Athlete.objects.matching(coach_user, '  ana ', 'POP', date(2015, 3, 12))

        assert found == athlete

    def test_matching_requires_same_date_of_birth(self, athlete, coach_user):
        assert Athlete.objects.matching(coach_user, 'Ana', 'Pop', date(2015, 3, 13)) is None

    def test_matching_is_per_coach(self, athlete, other_coach):
        assert Athlete.objects.matching(other_coach, 'Ana', 'Pop', date(2015, 3, 12)) is None

    def test_matching_prefers_oldest_record(self, athlete, coach_user):
        duplicate = Athlete.objects.create(
            first_name='ANA', last_name='pop', date_of_birth=date(2015, 3, 12),
            gender='F', coach=coach_user,
        )
        Athlete.objects.filter(pk=duplicate.pk).update(created_at=athlete.created_at + timedelta(seconds=1))

        assert Athlete.objects.matching(coach_user, 'Ana', 'Pop', '2015-03-12') == athlete

    def test_for_coach(self, athlete, coach_user, other_coach):
        assert list(Athlete.objects.for_coach(coach_user)) == [athlete]
        assert not Athlete.objects.for_coach(other_coach).exists()

    def test_full_name(self, athlete):
        assert str(athlete) == 'Ana Pop'
