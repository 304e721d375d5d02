"""
Schema capability descriptor for the grant tables.

The permission store needs to know which grant tables and optional columns
exist. That shape is resolved once, through the database introspection API,
and exposed as typed accessors. The cache belongs to the introspector
instance that the store owns, so tests can reset it or inject a fixed
descriptor.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from django.db import DatabaseError, connections, DEFAULT_DB_ALIAS

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


@dataclass(frozen=True)
class SchemaCapabilities:
    """What the grant tables support in the connected database."""

    version: int = SCHEMA_VERSION
    has_permissions: bool = True
    has_role_permissions: bool = True
    has_user_permissions: bool = True
    has_permission_is_active: bool = True
    has_user_permission_expiry: bool = True
    has_user_permission_scope: bool = True
    has_component_permissions: bool = True

    @classmethod
    def unavailable(cls):
        """Descriptor used when introspection itself failed: no grant lookups."""
        return cls(
            has_permissions=False,
            has_role_permissions=False,
            has_user_permissions=False,
            has_permission_is_active=False,
            has_user_permission_expiry=False,
            has_user_permission_scope=False,
            has_component_permissions=False,
        )

    @property
    def can_resolve_roles(self):
        return self.has_permissions and self.has_role_permissions

    @property
    def can_resolve_users(self):
        return self.has_permissions and self.has_user_permissions


class SchemaIntrospector:
    """
    Resolves and memoizes SchemaCapabilities for one database alias.

    Schema shape is assumed stable for the process lifetime, so the
    descriptor is never invalidated except through ``reset()``.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS, capabilities: Optional[SchemaCapabilities] = None):
        self.using = using
        self._capabilities = capabilities
        self._lock = threading.Lock()

    def reset(self):
        """Forget the memoized descriptor."""
        with self._lock:
            self._capabilities = None

    @property
    def capabilities(self) -> SchemaCapabilities:
        if self._capabilities is None:
            with self._lock:
                if self._capabilities is None:
                    self._capabilities = self._introspect()
        return self._capabilities

    def _introspect(self) -> SchemaCapabilities:
        connection = connections[self.using]
        try:
            with connection.cursor() as cursor:
                tables = set(connection.introspection.table_names(cursor))

                def columns(table):
                    if table not in tables:
                        return set()
                    return {
                        col.name for col in connection.introspection.get_table_description(cursor, table)
                    }

                permission_cols = columns('permissions')
                user_perm_cols = columns('user_permissions')
        except DatabaseError as exc:
            logger.error(
                "Grant schema introspection failed; role and user grants disabled",
                extra={'db_alias': self.using, 'error': str(exc)},
            )
            return SchemaCapabilities.unavailable()

        capabilities = SchemaCapabilities(
            has_permissions='permissions' in tables,
            has_role_permissions='role_permissions' in tables,
            has_user_permissions='user_permissions' in tables,
            has_permission_is_active='is_active' in permission_cols,
            has_user_permission_expiry='expires_at' in user_perm_cols,
            has_user_permission_scope='resource_id' in user_perm_cols,
            has_component_permissions='component_permissions' in tables,
        )
        logger.debug(
            "Grant schema capabilities resolved",
            extra={'db_alias': self.using, 'capabilities': capabilities.__dict__},
        )
        return capabilities
