"""
Signed bearer tokens carrying a principal and its permission snapshot.
"""
import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Iterable

import jwt
from django.conf import settings

from apps.core.exceptions import AuthenticationError
from apps.rbac.guard import Principal

logger = logging.getLogger(__name__)


class TokenService:
    """
    Issues and verifies JWTs.

    Claims: ``user_id``, ``email``, ``role``, ``role_id``, ``permissions``,
    ``iat``, ``exp``. The permission snapshot is a fast-path cache only.
    """

    @classmethod
    def issue(cls, principal: Principal, permissions: Iterable[str]) -> str:
        """
        Sign a token for the principal.

        Args:
            principal: verified principal
            permissions: effective permission names at issuance

        Returns:
            JWT token string
        """
        now = datetime.now(dt_timezone.utc)
        payload = {
            'user_id': str(principal.user_id),
            'email': principal.email,
            'role': principal.role_name,
            'role_id': str(principal.role_id) if principal.role_id else None,
            'permissions': list(permissions),
            'iat': now,
            'exp': now + timedelta(hours=getattr(settings, 'JWT_EXPIRATION_HOURS', 168)),
        }
        return jwt.encode(
            payload,
            settings.JWT_SECRET_KEY,
            algorithm=getattr(settings, 'JWT_ALGORITHM', 'HS256')
        )

    @classmethod
    def verify(cls, token: str) -> Principal:
        """
        Verify a token and rebuild its principal.

        Raises:
            AuthenticationError: missing, expired, tampered or malformed token
        """
        if not token:
            raise AuthenticationError("Authentication credentials were not provided")

        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[getattr(settings, 'JWT_ALGORITHM', 'HS256')],
                options={'require': ['exp', 'iat', 'user_id']},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected invalid token", extra={'reason': str(exc)})
            raise AuthenticationError("Invalid token")

        permissions = payload.get('permissions')
        if permissions is not None and not isinstance(permissions, list):
            raise AuthenticationError("Invalid token")

        return Principal(
            user_id=payload['user_id'],
            role_name=payload.get('role') or '',
            role_id=payload.get('role_id'),
            permissions=tuple(permissions) if permissions is not None else None,
            email=payload.get('email') or '',
        )
