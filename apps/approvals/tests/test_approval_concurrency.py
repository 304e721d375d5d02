"""
Concurrency tests for approval decisions.

Two decisions race on one pending request from separate threads (and
therefore separate database connections). Exactly one must win.
"""
import threading

import pytest
from django.db import connection

from apps.approvals.models import AccessRequest, ApprovalRequest, RequestStatus
from apps.approvals.services import ApprovalWorkflowService, RegistrationService
from apps.core.exceptions import ConflictError
from apps.rbac.models import User


def race(*decisions):
    """Run each decision in its own thread, released together; return outcomes."""
    barrier = threading.Barrier(len(decisions))
    outcomes = []
    lock = threading.Lock()

    def run(decision):
        try:
            barrier.wait(timeout=10)
            decision()
            result = 'ok'
        except ConflictError:
            result = 'conflict'
        except Exception as exc:
            result = f'error: {exc!r}'
        finally:
            connection.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=run, args=(decision,)) for decision in decisions]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return sorted(outcomes)


@pytest.fixture
def pending_parent(coach_user, athlete):
    return RegistrationService.register({
        'email': 'race.parent@example.com',
        'password': 'secret123',
        'first_name': 'Rita',
        'last_name': 'Race',
        'role': 'parent',
        'coach_id': str(coach_user.pk),
        'athlete_id': str(athlete.pk),
    })


@pytest.mark.django_db(transaction=True)
class TestConcurrentDecisions:
    """Test that concurrent decisions on one request serialise."""

    def test_concurrent_approvals(self, transactional_db, pending_parent, coach_user,
                                  superadmin_user, principal_for):
        """Test that two concurrent approvals yield one success and one conflict."""
        coach = principal_for(coach_user)
        admin = principal_for(superadmin_user)

        outcomes = race(
            lambda: ApprovalWorkflowService.approve(pending_parent.pk, coach),
            lambda: ApprovalWorkflowService.approve(pending_parent.pk, admin),
        )

        assert outcomes == ['conflict', 'ok']
        approval = ApprovalRequest.objects.get(pk=pending_parent.pk)
        assert approval.status == RequestStatus.APPROVED
        assert approval.approved_by_id in (coach_user.pk, superadmin_user.pk)
        assert AccessRequest.objects.filter(parent_id=approval.user_id).count() == 1

    def test_concurrent_approve_and_reject(self, transactional_db, pending_parent, coach_user,
                                           superadmin_user, principal_for):
        """Test that an approval racing a rejection leaves a consistent terminal state."""
        coach = principal_for(coach_user)
        admin = principal_for(superadmin_user)

        outcomes = race(
            lambda: ApprovalWorkflowService.approve(pending_parent.pk, coach),
            lambda: ApprovalWorkflowService.reject(pending_parent.pk, admin, reason='Duplicate'),
        )

        assert outcomes == ['conflict', 'ok']
        approval = ApprovalRequest.objects.get(pk=pending_parent.pk)
        user = User.objects.get(pk=approval.user_id)
        access = AccessRequest.objects.get(parent=user)
        if approval.status == RequestStatus.APPROVED:
            assert user.is_active is True
            assert access.status == RequestStatus.APPROVED
            assert approval.rejection_reason == ''
        else:
            assert approval.status == RequestStatus.REJECTED
            assert user.is_active is False
            assert access.status == RequestStatus.REJECTED
