"""
Athlete records.
"""
from django.db import models
from django.db.models.functions import Lower, Trim
from django.utils import timezone

from apps.core.models import BaseModel


class AthleteManager(models.Manager):
    """Manager for Athlete queries."""

    def for_coach(self, coach):
        return self.filter(coach=coach)

    def matching(self, coach, first_name, last_name, date_of_birth):
        """
        Existing athlete under ``coach`` with the same trimmed,
        case-insensitive name and date of birth.
        """
        return (
            self.annotate(
                first_name_key=Lower(Trim('first_name')),
                last_name_key=Lower(Trim('last_name')),
            )
            .filter(
                coach=coach,
                first_name_key=(first_name or '').strip().lower(),
                last_name_key=(last_name or '').strip().lower(),
                date_of_birth=date_of_birth,
            )
            .order_by('created_at')
            .first()
        )


class Athlete(BaseModel):
    """
    Club athlete.

    Created by a coach, or when an athlete account registration is approved.
    ``age`` and ``category`` are derived at write time from the date of birth.
    """

    GENDER_CHOICES = [
        ('M', 'Male'),
        ('F', 'Female'),
    ]

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=1, choices=GENDER_CHOICES)
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    category = models.CharField(max_length=10, blank=True, db_index=True)
    coach = models.ForeignKey(
        'rbac.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='coached_athletes',
    )
    date_joined = models.DateField(default=timezone.localdate)

    objects = AthleteManager()

    class Meta:
        db_table = 'athletes'
        ordering = ['last_name', 'first_name']
        indexes = [
            models.Index(fields=['coach', 'last_name'], name='athletes_coach_last_idx'),
        ]

    def __str__(self):
        return self.get_full_name()

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()
