"""
Tests for athlete profile normalisation.
"""
from datetime import date

import pytest

from apps.athletes.normalization import (
    build_athlete_profile, calculate_age, determine_category,
    normalize_date_of_birth, normalize_gender,
)
from apps.core.exceptions import ValidationError

TODAY = date(2024, 6, 15)


class TestDateOfBirth:
    """Test normalize_date_of_birth."""

    @pytest.mark.parametrize('value', [
        '2015-03-12', '12.03.2015', '12/03/2015', '12-03-2015',
        '2015-03-12T00:00:00', '2015-03-12T08:30:00Z', '  2015-03-12  ',
    ])
    def test_accepted_formats(self, value):
        assert normalize_date_of_birth(value) == date(2015, 3, 12)

    def test_single_digit_day_and_month(self):
        assert normalize_date_of_birth('1.2.2016') == date(2016, 2, 1)

    @pytest.mark.parametrize('value', [
        '', None, 'yesterday', '31.02.2015', '2015-13-01',
        '2015-03-12xyz', '2015-03-12T00:00:00junk', '12.03.2015 extra', '20150312',
    ])
    def test_rejected(self, value):
        with pytest.raises(ValidationError):
            normalize_date_of_birth(value)

    def test_date_passthrough(self):
        assert normalize_date_of_birth(date(2015, 3, 12)) == date(2015, 3, 12)


class TestGender:
    """Test normalize_gender."""

    @pytest.mark.parametrize('value,expected', [
        ('M', 'M'), ('male', 'M'), (' Boy ', 'M'),
        ('f', 'F'), ('Female', 'F'), ('girl', 'F'),
    ])
    def test_mapping(self, value, expected):
        assert normalize_gender(value) == expected

    @pytest.mark.parametrize('value', ['', None, 'x'])
    def test_rejected(self, value):
        with pytest.raises(ValidationError):
            normalize_gender(value)


class TestAgeAndCategory:
    """Test calculate_age and determine_category."""

    def test_age_before_birthday(self):
        assert calculate_age(date(2015, 6, 16), TODAY) == 8

    def test_age_on_birthday(self):
        assert calculate_age(date(2015, 6, 15), TODAY) == 9

    @pytest.mark.parametrize('age,category', [
        (4, 'U6'), (5, 'U6'), (6, 'U8'), (7, 'U8'), (9, 'U10'),
        (11, 'U12'), (13, 'U14'), (15, 'U16'), (16, 'U18'), (18, 'U18'),
    ])
    def test_category_bands(self, age, category):
        assert determine_category(age) == category


class TestBuildAthleteProfile:
    """Test build_athlete_profile."""

    def test_profile(self):
        profile = build_athlete_profile('12.03.2017', 'F', today=TODAY)

        assert profile == {'dateOfBirth': '2017-03-12', 'gender': 'F', 'age': 7, 'category': 'U8'}

    def test_boundary_ages_accepted(self):
        assert build_athlete_profile('2020-06-15', 'M', today=TODAY)['age'] == 4
        assert build_athlete_profile('2006-06-15', 'M', today=TODAY)['age'] == 18

    def test_too_young(self):
        with pytest.raises(ValidationError) as exc_info:
            build_athlete_profile('2020-06-16', 'M', today=TODAY)
        assert exc_info.value.details['age'] == 3

    def test_too_old(self):
        """Test that a 19 year old is refused."""
        with pytest.raises(ValidationError) as exc_info:
            build_athlete_profile('2005-06-15', 'M', today=TODAY)
        assert exc_info.value.details['age'] == 19
