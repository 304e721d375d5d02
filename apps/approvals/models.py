"""
Approval workflow models.

Implements:
- ApprovalRequest (one per self-registered account, pending until decided)
- AccessRequest (a parent's request to follow an athlete, mirrored from
  parent registrations)
"""
from django.db import models
from django.utils import timezone

from apps.core.models import BaseModel


class RequestStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


class ApprovalRequestQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=RequestStatus.PENDING)

    def for_user(self, user_id):
        return self.filter(user_id=user_id)


class ApprovalRequest(BaseModel):
    """
    Account approval request.

    Transitions exactly once from pending to approved or rejected and is
    never re-opened. ``approval_notes`` holds the registrant's free-text
    message; ``athlete_profile`` holds the validated profile of an athlete
    registration (``dateOfBirth``, ``gender``, ``age``, ``category``).
    """

    user = models.ForeignKey(
        'rbac.User',
        on_delete=models.CASCADE,
        related_name='approval_requests',
    )
    coach = models.ForeignKey(
        'rbac.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='coach_approval_requests',
    )
    athlete = models.ForeignKey(
        'athletes.Athlete',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approval_requests',
    )
    requested_role = models.CharField(max_length=100, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.PENDING,
        db_index=True,
    )
    request_date = models.DateTimeField(default=timezone.now)
    response_date = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        'rbac.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='decided_approval_requests',
    )
    rejection_reason = models.TextField(blank=True)
    approval_notes = models.TextField(blank=True)
    athlete_profile = models.JSONField(null=True, blank=True)

    objects = ApprovalRequestQuerySet.as_manager()

    class Meta:
        db_table = 'approval_requests'
        ordering = ['-request_date']
        indexes = [
            models.Index(fields=['status', 'request_date'], name='apprreq_status_date_idx'),
            models.Index(fields=['coach', 'status'], name='apprreq_coach_status_idx'),
        ]

    def __str__(self):
        return f"{self.requested_role} request for {self.user_id} ({self.status})"

    @property
    def is_pending(self):
        return self.status == RequestStatus.PENDING


class AccessRequestQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=RequestStatus.PENDING)

    def latest_pending_for_parent(self, parent_id):
        return self.filter(parent_id=parent_id, status=RequestStatus.PENDING).order_by('-request_date').first()


class AccessRequest(BaseModel):
    """A parent's request to follow an athlete under a coach."""

    parent = models.ForeignKey(
        'rbac.User',
        on_delete=models.CASCADE,
        related_name='access_requests',
    )
    athlete = models.ForeignKey(
        'athletes.Athlete',
        on_delete=models.CASCADE,
        related_name='access_requests',
    )
    coach = models.ForeignKey(
        'rbac.User',
        on_delete=models.CASCADE,
        related_name='coach_access_requests',
    )
    status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.PENDING,
        db_index=True,
    )
    request_date = models.DateTimeField(default=timezone.now)
    response_date = models.DateTimeField(null=True, blank=True)
    message = models.TextField(blank=True)

    objects = AccessRequestQuerySet.as_manager()

    class Meta:
        db_table = 'access_requests'
        ordering = ['-request_date']
        indexes = [
            models.Index(fields=['parent', 'athlete', 'coach'], name='accreq_links_idx'),
            models.Index(fields=['coach', 'status'], name='accreq_coach_status_idx'),
        ]

    def __str__(self):
        return f"{self.parent_id} -> {self.athlete_id} ({self.status})"
