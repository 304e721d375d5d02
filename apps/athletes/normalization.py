"""
Normalisation of athlete profile input: date of birth, gender, age, category.
"""
import re
from datetime import date, datetime

from django.utils import timezone

from apps.core.exceptions import ValidationError

MIN_AGE = 4
MAX_AGE = 18

# (upper bound exclusive, category)
CATEGORY_BANDS = (
    (6, 'U6'),
    (8, 'U8'),
    (10, 'U10'),
    (12, 'U12'),
    (14, 'U14'),
    (16, 'U16'),
)
OLDEST_CATEGORY = 'U18'

_DAY_FIRST = re.compile(r'^(\d{1,2})[./-](\d{1,2})[./-](\d{4})$')
# Date part of an ISO date or datetime; the time part is ignored
_ISO = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})'
    r'(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$'
)

_GENDERS = {
    'M': 'M', 'MALE': 'M', 'MASCULIN': 'M', 'B': 'M', 'BOY': 'M',
    'F': 'F', 'FEMALE': 'F', 'FEMININ': 'F', 'G': 'F', 'GIRL': 'F',
}


def normalize_date_of_birth(value) -> date:
    """
    Parse ISO ``YYYY-MM-DD`` or day-first ``DD.MM.YYYY`` / ``DD/MM/YYYY`` /
    ``DD-MM-YYYY``.

    Raises:
        ValidationError: unparseable or impossible date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value or '').strip()
    if not text:
        raise ValidationError("Date of birth is required", details={'field': 'date_of_birth'})

    match = _DAY_FIRST.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
    else:
        match = _ISO.match(text)
        if match is None:
            raise ValidationError("Invalid date of birth", details={'field': 'date_of_birth'})
        year, month, day = (int(part) for part in match.groups())

    try:
        return date(year, month, day)
    except ValueError:
        raise ValidationError("Invalid date of birth", details={'field': 'date_of_birth'})


def normalize_gender(value) -> str:
    """Map free-form gender input to ``M`` or ``F``."""
    gender = _GENDERS.get(str(value or '').strip().upper())
    if gender is None:
        raise ValidationError("Invalid gender", details={'field': 'gender'})
    return gender


def calculate_age(date_of_birth: date, today: date = None) -> int:
    today = today or timezone.localdate()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def determine_category(age: int) -> str:
    for bound, category in CATEGORY_BANDS:
        if age < bound:
            return category
    return OLDEST_CATEGORY


def build_athlete_profile(date_of_birth, gender, today: date = None) -> dict:
    """
    Validate and derive the stored athlete profile.

    Returns:
        Dict with ``dateOfBirth`` (ISO), ``gender``, ``age`` and ``category``

    Raises:
        ValidationError: bad date or gender, or age outside the allowed range
    """
    dob = normalize_date_of_birth(date_of_birth)
    normalized_gender = normalize_gender(gender)
    age = calculate_age(dob, today)
    if age < MIN_AGE or age > MAX_AGE:
        raise ValidationError(
            f"Athlete age must be between {MIN_AGE} and {MAX_AGE}",
            details={'field': 'date_of_birth', 'age': age},
        )
    return {
        'dateOfBirth': dob.isoformat(),
        'gender': normalized_gender,
        'age': age,
        'category': determine_category(age),
    }
