"""
Registration and approval workflow services.

Implements:
- RegistrationService: self-registration producing an inactive account and
  a pending approval request
- ApprovalWorkflowService: approve / reject under a row lock, per-actor listing
- AccessRequestService: parent access requests: create, answer, per-actor listing
"""
import logging
import uuid
from typing import Any, Dict, Optional, Tuple

from django.core import validators
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from django.db.models import Exists, OuterRef, Q
from django.utils import timezone

from apps.approvals.models import AccessRequest, ApprovalRequest, RequestStatus
from apps.athletes.models import Athlete
from apps.athletes.normalization import build_athlete_profile
from apps.core.exceptions import (
    AuthorizationError, ClubAccessError, ConflictError, InternalError, NotFoundError, ValidationError
)
from apps.core.logging import SecurityLogger
from apps.rbac.models import Role, RoleName, User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _as_uuid(value, field: str = None):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        if field is None:
            return None
        raise ValidationError(f"Invalid {field}", details={'field': field})


def _store_error(exc: DatabaseError, operation: str) -> InternalError:
    logger.error(
        f"{operation} failed, transaction rolled back",
        extra={'operation': operation, 'error': str(exc)},
        exc_info=True,
    )
    return InternalError(retryable=isinstance(exc, OperationalError))


class RegistrationService:
    """
    Self-registration of coach, parent and athlete accounts.

    All validation runs before the transaction opens. The account is created
    inactive and awaits approval.
    """

    @classmethod
    def _validate(cls, payload: Dict[str, Any]) -> Dict[str, Any]:
        def text(key):
            return str(payload.get(key) or '').strip()

        email = User.objects.normalize_email(text('email'))
        password = payload.get('password') or ''
        first_name = text('first_name')
        last_name = text('last_name')
        role = text('role').lower()

        missing = [
            field for field, value in (
                ('email', email), ('password', password),
                ('first_name', first_name), ('last_name', last_name), ('role', role),
            ) if not value
        ]
        if missing:
            raise ValidationError("Missing required fields", details={'fields': missing})

        try:
            validators.validate_email(email)
        except DjangoValidationError:
            raise ValidationError("Invalid email address", details={'field': 'email'})

        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                details={'field': 'password'},
            )

        if role not in RoleName.SELF_REGISTRATION:
            raise ValidationError("Invalid role", details={'field': 'role'})

        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError("Email already registered", details={'field': 'email'})

        cleaned = {
            'email': email,
            'password': password,
            'first_name': first_name,
            'last_name': last_name,
            'role': role,
            'message': text('message'),
            'coach': None,
            'athlete': None,
            'athlete_profile': None,
        }

        if role in (RoleName.PARENT, RoleName.ATHLETE):
            cleaned['coach'] = cls._require_coach(payload.get('coach_id'))

        if role == RoleName.PARENT:
            athlete_id = payload.get('athlete_id')
            if not athlete_id:
                raise ValidationError("Athlete is required", details={'field': 'athlete_id'})
            athlete = Athlete.objects.filter(pk=_as_uuid(athlete_id, 'athlete_id')).first()
            if athlete is None:
                raise ValidationError("Athlete not found", details={'field': 'athlete_id'})
            cleaned['athlete'] = athlete

        if role == RoleName.ATHLETE:
            cleaned['athlete_profile'] = build_athlete_profile(
                payload.get('date_of_birth'),
                payload.get('gender'),
            )

        return cleaned

    @classmethod
    def _require_coach(cls, coach_id) -> User:
        if not coach_id:
            raise ValidationError("Coach is required", details={'field': 'coach_id'})
        coach = User.objects.filter(
            pk=_as_uuid(coach_id, 'coach_id'),
            role_name=RoleName.COACH,
        ).first()
        if coach is None:
            raise ValidationError("Coach not found", details={'field': 'coach_id'})
        return coach

    @classmethod
    def register(cls, payload: Dict[str, Any]) -> ApprovalRequest:
        """
        Create an inactive account and its pending approval request.

        Parent registrations also create a mirrored pending AccessRequest.
        Athlete registrations store the derived profile on the request; no
        Athlete row exists until approval.

        Raises:
            ValidationError: malformed payload, unknown coach/athlete, used
                email, or athlete age outside the allowed range
            InternalError: the store failed; nothing was written
        """
        data = cls._validate(payload)

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    data['email'],
                    data['password'],
                    first_name=data['first_name'],
                    last_name=data['last_name'],
                    role=Role.objects.system_role(data['role']),
                    is_active=False,
                    needs_approval=True,
                )
                approval = ApprovalRequest.objects.create(
                    user=user,
                    coach=data['coach'],
                    athlete=data['athlete'],
                    requested_role=data['role'],
                    approval_notes=data['message'],
                    athlete_profile=data['athlete_profile'],
                )
                if data['role'] == RoleName.PARENT:
                    AccessRequest.objects.create(
                        parent=user,
                        athlete=data['athlete'],
                        coach=data['coach'],
                        request_date=approval.request_date,
                        message=data['message'],
                    )
        except IntegrityError:
            raise ValidationError("Email already registered", details={'field': 'email'})
        except DatabaseError as exc:
            raise _store_error(exc, 'register')

        logger.info(
            "Registration awaiting approval",
            extra={
                'approval_request_id': str(approval.pk),
                'user_id': str(user.pk),
                'requested_role': approval.requested_role,
            },
        )
        return approval


class ApprovalWorkflowService:
    """
    Approval state machine: pending -> approved | rejected, both terminal.

    Every decision locks the request row before looking at its status, so
    two concurrent decisions on one request yield one success and one
    ConflictError.
    """

    @classmethod
    def effective_links(cls, approval: ApprovalRequest) -> Tuple[Optional[uuid.UUID], Optional[uuid.UUID]]:
        """
        Coach and athlete ids the request refers to.

        Parent requests missing either link take it from the parent's most
        recent pending AccessRequest.
        """
        coach_id, athlete_id = approval.coach_id, approval.athlete_id
        if approval.requested_role == RoleName.PARENT and not (coach_id and athlete_id):
            access = AccessRequest.objects.latest_pending_for_parent(approval.user_id)
            if access is not None:
                coach_id = coach_id or access.coach_id
                athlete_id = athlete_id or access.athlete_id
        return coach_id, athlete_id

    @classmethod
    def can_decide(cls, approval: ApprovalRequest, actor, coach_id=None) -> bool:
        if actor is None:
            return False
        if actor.is_superadmin:
            return True
        if approval.requested_role == RoleName.PARENT:
            return coach_id is not None and str(coach_id) == str(actor.user_id)
        return False

    @classmethod
    def _lock(cls, request_id) -> ApprovalRequest:
        pk = _as_uuid(request_id)
        approval = ApprovalRequest.objects.select_for_update().filter(pk=pk).first() if pk else None
        if approval is None:
            raise NotFoundError("Approval request not found")
        if not approval.is_pending:
            raise ConflictError("Request already processed", details={'status': approval.status})
        return approval

    @classmethod
    def _authorize(cls, approval, actor, coach_id, decision):
        if not cls.can_decide(approval, actor, coach_id):
            SecurityLogger.log_permission_denied(actor, [f'approval_requests.{decision}'])
            raise AuthorizationError("Insufficient permissions")

    @classmethod
    def approve(cls, request_id, actor) -> ApprovalRequest:
        """
        Approve a pending request and activate its account.

        Raises:
            NotFoundError: unknown request id
            ConflictError: the request is no longer pending
            AuthorizationError: the actor has no authority over this request
            InternalError: the store failed; nothing was changed
        """
        try:
            with transaction.atomic():
                approval = cls._lock(request_id)
                coach_id, athlete_id = cls.effective_links(approval)
                cls._authorize(approval, actor, coach_id, 'approve')

                now = timezone.now()
                actor_id = _as_uuid(actor.user_id)
                user = User.objects.select_for_update().get(pk=approval.user_id)
                user.is_active = True
                user.needs_approval = False
                user.approved_by_id = actor_id
                user.approved_at = now
                update_fields = ['is_active', 'needs_approval', 'approved_by', 'approved_at', 'updated_at']

                if coach_id and athlete_id:
                    cls._approve_access(approval, coach_id, athlete_id, now)

                if approval.requested_role == RoleName.ATHLETE and approval.athlete_profile:
                    athlete = cls._link_athlete(approval, user, coach_id)
                    user.athlete = athlete
                    approval.athlete = athlete
                    update_fields.append('athlete')

                user.save(update_fields=update_fields)

                approval.status = RequestStatus.APPROVED
                approval.approved_by_id = actor_id
                approval.response_date = now
                approval.save(update_fields=['status', 'approved_by', 'response_date', 'athlete', 'updated_at'])
        except ClubAccessError:
            raise
        except DatabaseError as exc:
            raise _store_error(exc, 'approve')

        SecurityLogger.log_approval_decision(approval.pk, 'approved', actor.user_id, approval.user_id)
        return approval

    @classmethod
    def _approve_access(cls, approval, coach_id, athlete_id, now):
        matching = AccessRequest.objects.filter(
            parent_id=approval.user_id,
            athlete_id=athlete_id,
            coach_id=coach_id,
        )
        if matching.exists():
            matching.exclude(status=RequestStatus.APPROVED).update(
                status=RequestStatus.APPROVED,
                response_date=now,
                updated_at=now,
            )
        else:
            AccessRequest.objects.create(
                parent_id=approval.user_id,
                athlete_id=athlete_id,
                coach_id=coach_id,
                status=RequestStatus.APPROVED,
                response_date=now,
                message=approval.approval_notes,
            )

    @classmethod
    def _link_athlete(cls, approval, user, coach_id) -> Athlete:
        profile = approval.athlete_profile
        date_of_birth = profile['dateOfBirth']
        athlete = Athlete.objects.matching(coach_id, user.first_name, user.last_name, date_of_birth)
        if athlete is not None:
            logger.info(
                "Linked athlete account to existing athlete",
                extra={'athlete_id': str(athlete.pk), 'user_id': str(user.pk)},
            )
            return athlete
        return Athlete.objects.create(
            first_name=user.first_name,
            last_name=user.last_name,
            date_of_birth=date_of_birth,
            gender=profile.get('gender', ''),
            age=profile.get('age'),
            category=profile.get('category', ''),
            coach_id=coach_id,
        )

    @classmethod
    def reject(cls, request_id, actor, reason: str = None) -> ApprovalRequest:
        """
        Reject a pending request. The account stays inactive.

        Raises:
            NotFoundError, ConflictError, AuthorizationError, InternalError
        """
        try:
            with transaction.atomic():
                approval = cls._lock(request_id)
                coach_id, athlete_id = cls.effective_links(approval)
                cls._authorize(approval, actor, coach_id, 'reject')

                now = timezone.now()
                if approval.requested_role == RoleName.PARENT and coach_id and athlete_id:
                    AccessRequest.objects.filter(
                        parent_id=approval.user_id,
                        athlete_id=athlete_id,
                        coach_id=coach_id,
                        status=RequestStatus.PENDING,
                    ).update(status=RequestStatus.REJECTED, response_date=now, updated_at=now)

                approval.status = RequestStatus.REJECTED
                approval.rejection_reason = reason or ''
                approval.approved_by_id = _as_uuid(actor.user_id)
                approval.response_date = now
                approval.save(update_fields=[
                    'status', 'rejection_reason', 'approved_by', 'response_date', 'updated_at'
                ])
        except ClubAccessError:
            raise
        except DatabaseError as exc:
            raise _store_error(exc, 'reject')

        SecurityLogger.log_approval_decision(approval.pk, 'rejected', actor.user_id, approval.user_id)
        return approval

    @classmethod
    def list_for_actor(cls, actor, status: str = None):
        """
        Requests visible to the actor, newest first.

        Superadmins see all. Coaches see parent and athlete requests whose
        effective coach they are. Everyone else sees their own.
        """
        queryset = ApprovalRequest.objects.select_related('user', 'coach', 'athlete')
        if status:
            queryset = queryset.filter(status=status)

        if actor.is_superadmin:
            return queryset.order_by('-request_date')

        actor_id = _as_uuid(actor.user_id)
        if actor.role_name == RoleName.COACH:
            via_access = AccessRequest.objects.filter(
                parent_id=OuterRef('user_id'),
                coach_id=actor_id,
                status=RequestStatus.PENDING,
            )
            queryset = queryset.filter(
                requested_role__in=(RoleName.PARENT, RoleName.ATHLETE)
            ).filter(
                Q(coach_id=actor_id)
                | (Q(coach__isnull=True, requested_role=RoleName.PARENT) & Exists(via_access))
            )
            return queryset.order_by('-request_date')

        return queryset.filter(user_id=actor_id).order_by('-request_date')


class AccessRequestService:
    """
    Parent access requests outside registration.

    Parents ask to follow a further athlete; the addressed coach (or a
    superadmin) answers once. Answers are terminal like approval decisions.
    """

    @classmethod
    def create(cls, actor, athlete_id, coach_id=None, message: str = '') -> AccessRequest:
        """
        Open a pending access request from the acting parent.

        The coach defaults to the athlete's coach.

        Raises:
            AuthorizationError: the actor is not a parent
            ValidationError: unknown athlete or coach
            ConflictError: a pending or approved request for the same
                athlete and coach already exists
            InternalError: the store failed
        """
        if actor is None or actor.role_name != RoleName.PARENT:
            raise AuthorizationError("Insufficient permissions")

        if not athlete_id:
            raise ValidationError("Athlete is required", details={'field': 'athlete_id'})
        athlete = Athlete.objects.filter(pk=_as_uuid(athlete_id, 'athlete_id')).first()
        if athlete is None:
            raise ValidationError("Athlete not found", details={'field': 'athlete_id'})

        if coach_id:
            coach = RegistrationService._require_coach(coach_id)
        elif athlete.coach_id:
            coach = athlete.coach
        else:
            raise ValidationError("Coach is required", details={'field': 'coach_id'})

        parent_id = _as_uuid(actor.user_id)
        try:
            with transaction.atomic():
                existing = AccessRequest.objects.select_for_update().filter(
                    parent_id=parent_id,
                    athlete=athlete,
                    coach=coach,
                    status__in=(RequestStatus.PENDING, RequestStatus.APPROVED),
                ).first()
                if existing is not None:
                    raise ConflictError(
                        "Access request already exists",
                        details={'access_request_id': str(existing.pk), 'status': existing.status},
                    )
                access = AccessRequest.objects.create(
                    parent_id=parent_id,
                    athlete=athlete,
                    coach=coach,
                    message=(message or '').strip(),
                )
        except ClubAccessError:
            raise
        except DatabaseError as exc:
            raise _store_error(exc, 'create_access_request')

        logger.info(
            "Access request created",
            extra={'access_request_id': str(access.pk), 'parent_id': str(parent_id)},
        )
        return access

    @classmethod
    def decide(cls, request_id, actor, approve: bool) -> AccessRequest:
        """
        Approve or reject a pending access request under a row lock.

        Only the addressed coach or a superadmin may answer.

        Raises:
            NotFoundError, ConflictError, AuthorizationError, InternalError
        """
        decision = 'approve' if approve else 'reject'
        try:
            with transaction.atomic():
                pk = _as_uuid(request_id)
                access = AccessRequest.objects.select_for_update().filter(pk=pk).first() if pk else None
                if access is None:
                    raise NotFoundError("Access request not found")
                if access.status != RequestStatus.PENDING:
                    raise ConflictError("Request already processed", details={'status': access.status})

                if actor is None or not (actor.is_superadmin or str(access.coach_id) == str(actor.user_id)):
                    SecurityLogger.log_permission_denied(actor, [f'access_requests.{decision}'])
                    raise AuthorizationError("Insufficient permissions")

                access.status = RequestStatus.APPROVED if approve else RequestStatus.REJECTED
                access.response_date = timezone.now()
                access.save(update_fields=['status', 'response_date', 'updated_at'])
        except ClubAccessError:
            raise
        except DatabaseError as exc:
            raise _store_error(exc, f'{decision}_access_request')

        SecurityLogger.log_approval_decision(access.pk, access.status, actor.user_id, access.parent_id)
        return access

    @classmethod
    def list_for_actor(cls, actor, status: str = None):
        """
        Superadmins see all; coaches see requests addressed to them; anyone
        else sees the requests they made.
        """
        queryset = AccessRequest.objects.select_related('parent', 'athlete', 'coach')
        if status:
            queryset = queryset.filter(status=status)

        if actor.is_superadmin:
            return queryset.order_by('-request_date')

        actor_id = _as_uuid(actor.user_id)
        if actor.role_name == RoleName.COACH:
            return queryset.filter(coach_id=actor_id).order_by('-request_date')
        return queryset.filter(parent_id=actor_id).order_by('-request_date')
