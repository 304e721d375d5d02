"""
Permission resolver.

Two modes share one equivalence model:

- decision: does a principal hold any of the requested permission names?
- aggregation: which permission names does a user effectively hold?

Requested names are expanded before matching. Expansion follows suffix
stripping (``X.own`` / ``X.all`` are satisfied by ``X``), symmetric aliases
(``events.*`` and ``probes.*``) and coarse implications (``events.manage``
satisfies the other ``events`` actions).
"""
import logging
from collections import deque
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from apps.core.exceptions import NotFoundError
from apps.rbac.models import RoleName
from apps.rbac.store import PermissionStore

logger = logging.getLogger(__name__)

WILDCARD = '*'
SCOPE_SUFFIXES = ('.own', '.all')

BASELINE_PERMISSIONS: Dict[str, Tuple[str, ...]] = {
    RoleName.SUPERADMIN: (WILDCARD,),
    RoleName.COACH: (
        'athletes.view',
        'athletes.edit',
        'athletes.avatar.view',
        'athletes.avatar.upload',
        'results.create',
        'results.view',
        'results.edit',
        'events.view',
        'messages.view',
        'messages.create',
        'access_requests.view',
        'access_requests.edit',
    ),
    RoleName.PARENT: (
        'athletes.view',
        'athletes.avatar.view',
        'results.view',
        'events.view',
        'messages.view',
        'messages.create',
        'access_requests.create',
        'access_requests.view',
    ),
    RoleName.ATHLETE: (
        'athletes.view',
        'results.view',
        'events.view',
        'messages.view',
    ),
}

# Symmetric: holding either name satisfies a request for the other
PERMISSION_ALIASES: Tuple[Tuple[str, str], ...] = tuple(
    (f'events.{action}', f'probes.{action}')
    for action in ('view', 'create', 'edit', 'delete', 'manage')
) + (
    ('approval_requests.view', 'access_requests.view'),
)

# Directed: holder -> names it satisfies
PERMISSION_IMPLICATIONS: Dict[str, Tuple[str, ...]] = {
    'events.manage': ('events.view', 'events.create', 'events.edit', 'events.delete'),
}


def _build_satisfied_by() -> Dict[str, FrozenSet[str]]:
    graph: Dict[str, Set[str]] = {}
    for left, right in PERMISSION_ALIASES:
        graph.setdefault(left, set()).add(right)
        graph.setdefault(right, set()).add(left)
    for holder, implied in PERMISSION_IMPLICATIONS.items():
        for name in implied:
            graph.setdefault(name, set()).add(holder)
    return {name: frozenset(holders) for name, holders in graph.items()}


SATISFIED_BY = _build_satisfied_by()


def strip_scope(name: str) -> Optional[str]:
    """Return ``X`` for ``X.own`` / ``X.all``, else None."""
    for suffix in SCOPE_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[:-len(suffix)]
    return None


def expand_permissions(names: Iterable[str]) -> Set[str]:
    """
    Fixed-point closure of the names under the "is satisfied by" relation.

    The result always contains the input names.
    """
    seen: Set[str] = set()
    queue = deque(name for name in names if name)
    while queue:
        name = queue.popleft()
        if name in seen:
            continue
        seen.add(name)
        queue.extend(SATISFIED_BY.get(name, ()))
        base = strip_scope(name)
        if base:
            queue.append(base)
    return seen


@lru_cache(maxsize=1024)
def _candidates_for(name: str) -> FrozenSet[str]:
    closure = expand_permissions([name])
    if strip_scope(name) is None:
        # A scoped grant satisfies the unscoped request, never the reverse scope
        scoped = {
            f'{member}{suffix}'
            for member in closure
            if strip_scope(member) is None
            for suffix in SCOPE_SUFFIXES
        }
        closure |= scoped
    return frozenset(closure)


def permission_candidates(names: Iterable[str]) -> Set[str]:
    """
    Every permission name whose holder satisfies at least one of ``names``.

    Includes the wildcard.
    """
    candidates = {WILDCARD}
    for name in names:
        if name:
            candidates |= _candidates_for(name)
    return candidates


class PermissionResolver:
    """
    Decides and aggregates permissions against the grant store.

    Never writes or locks grant tables.
    """

    def __init__(self, store: Optional[PermissionStore] = None):
        self.store = store or PermissionStore()

    def is_allowed(self, principal, permission_names: Iterable[str], resource=None,
                   use_snapshot: bool = True) -> bool:
        """
        Decision mode. True when the principal holds any of the names.

        Args:
            principal: object with ``user_id``, ``role_name``, ``role_id``
                and ``permissions`` (token snapshot or None)
            permission_names: requested names; any one suffices
            resource: optional ``(resource_type, resource_id)`` so scoped user
                grants on that resource count
            use_snapshot: consult the token snapshot before the store
        """
        names = [name for name in permission_names if name]
        if principal is None or not names:
            return False

        if principal.role_name == RoleName.SUPERADMIN:
            return True

        candidates = permission_candidates(names)

        if use_snapshot and principal.permissions:
            if candidates.intersection(principal.permissions):
                return True

        if self.store.has_user_grant(principal.user_id, candidates, resource=resource):
            return True

        role_id = self.store.resolve_role_id(principal.role_id, principal.role_name)
        if self.store.has_role_grant(role_id, candidates):
            return True

        # Same baseline the token snapshot carries when nothing is seeded
        baseline = BASELINE_PERMISSIONS.get(principal.role_name)
        if baseline and candidates.intersection(baseline):
            if not self._granted_names(principal.user_id, role_id):
                return True

        return False

    def _granted_names(self, user_id, role_id) -> Set[str]:
        return self.store.role_permission_names(role_id) | self.store.user_permission_names(user_id)

    def effective_permissions_for(self, user_id, role_id=None, role_name: str = None) -> List[str]:
        """Aggregation mode for an already-loaded identity."""
        role_id = self.store.resolve_role_id(role_id, role_name)
        granted = self._granted_names(user_id, role_id)
        if not granted:
            granted = set(BASELINE_PERMISSIONS.get(role_name, ()))
            if granted:
                logger.debug(
                    "No stored grants, using baseline permissions",
                    extra={'user_id': str(user_id), 'role': role_name},
                )
        return sorted(granted)

    def resolve_effective_permissions(self, user_id) -> List[str]:
        """
        Aggregation mode. Sorted, deduplicated permission names for a user.

        Raises:
            NotFoundError: the user does not exist
        """
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found", details={'user_id': str(user_id)})
        return self.effective_permissions_for(user.pk, user.role_id, user.role_name)


@lru_cache(maxsize=None)
def get_default_resolver() -> PermissionResolver:
    """Process-wide resolver; its store owns the schema capability cache."""
    return PermissionResolver()
