from django.apps import AppConfig


class VolunteeringConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "volunteering"
    verbose_name = "Volunteer events"

    def ready(self) -> None:
        from volunteering import signals  # noqa: F401
