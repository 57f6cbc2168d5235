import logging
import os
from typing import Optional, Dict

from django.apps import AppConfig
from django.db import transaction
from django.db.utils import OperationalError, ProgrammingError, IntegrityError


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.core"

    def ready(self):
        """Seed the dashboard administrator and its roles when credentials are configured (idempotent)."""
        logger = logging.getLogger("bootstrap")

        creds = self._read_superuser_env(logger)
        if not creds:
            return

        try:
            with transaction.atomic():
                admin = self._ensure_superuser(logger, creds)
                self._ensure_roles(logger, admin)
        except (OperationalError, ProgrammingError, IntegrityError):
            logger.info("Database not ready; skipping superuser bootstrap")

    def _read_superuser_env(self, logger) -> Optional[Dict[str, str]]:
        username = os.getenv("SUPERUSER_USERNAME")
        password = os.getenv("SUPERUSER_PASSWORD")
        if not username or not password:
            logger.debug("SUPERUSER_USERNAME/PASSWORD not set; skipping superuser creation")
            return None
        return {"username": username, "email": os.getenv("SUPERUSER_EMAIL") or "", "password": password}

    def _ensure_superuser(self, logger, creds: Dict[str, str]):
        """Create the administrator if missing. Safe for concurrent startup across workers."""
        from django.contrib.auth import get_user_model

        User = get_user_model()
        username = creds["username"]
        try:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={"email": creds["email"], "is_superuser": True, "is_staff": True},
            )
        except IntegrityError:
            # Another worker created it at the same time
            logger.info("Race detected creating superuser '%s'; fetching existing", username)
            user, created = User.objects.get(username=username), False

        if created:
            user.set_password(creds["password"])
            user.save(update_fields=["password"])
            logger.info("Created superuser '%s'", username)
        elif not (user.is_superuser and user.is_staff):
            user.is_superuser = user.is_staff = True
            user.save(update_fields=["is_superuser", "is_staff"])
            logger.info("Promoted '%s' to superuser", username)
        return user

    def _ensure_roles(self, logger, admin_user):
        from apps.accounts.models import Role
        from apps.core.enums import Roles

        created_roles = []
        for name in Roles.names():
            role_obj, created = Role.objects.get_or_create(name=name)
            if created:
                created_roles.append(role_obj.name)
            role_obj.users.add(admin_user)

        if created_roles:
            logger.info("Created roles: %s", created_roles)
        logger.info("Assigned all roles to '%s'", admin_user.username)
