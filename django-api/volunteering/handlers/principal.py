"""Maps the authenticated Django user to the engine's Principal."""

from volunteering.conf import LifecycleSettings
from volunteering.domain import Principal, Role


def principal_for_user(user, settings: LifecycleSettings) -> Principal | None:
    """Return the principal for a request user, or None when anonymous."""
    if user is None or not user.is_authenticated:
        return None
    if user.is_superuser or user.is_staff:
        role = Role.ADMIN
    elif user.groups.filter(name=settings.managers_group).exists():
        role = Role.MANAGER
    else:
        role = Role.VOLUNTEER
    return Principal(user_id=user.pk, role=role)
