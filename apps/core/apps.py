from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)

SUPPORTED_JWT_ALGORITHMS = ('HS256', 'HS384', 'HS512')


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """
        Validate token signing configuration when Django initializes.

        Session tokens carry a permission snapshot, so a weak signing key or
        an unusable algorithm is refused before any request is served.
        """
        self._validate_jwt_configuration()
        logger.debug("Token signing configuration validated")

    def _validate_jwt_configuration(self):
        jwt_secret = getattr(settings, 'JWT_SECRET_KEY', None)

        if not jwt_secret or len(jwt_secret) < 32:
            raise ImproperlyConfigured(
                "JWT_SECRET_KEY must be set and at least 32 characters long."
            )

        if jwt_secret == getattr(settings, 'SECRET_KEY', None):
            raise ImproperlyConfigured(
                "JWT_SECRET_KEY must be different from SECRET_KEY."
            )

        algorithm = getattr(settings, 'JWT_ALGORITHM', 'HS256')
        if algorithm not in SUPPORTED_JWT_ALGORITHMS:
            raise ImproperlyConfigured(
                f"JWT_ALGORITHM must be one of {', '.join(SUPPORTED_JWT_ALGORITHMS)}, got {algorithm!r}."
            )

        if getattr(settings, 'JWT_EXPIRATION_HOURS', 0) <= 0:
            raise ImproperlyConfigured("JWT_EXPIRATION_HOURS must be positive.")
