from django.apps import AppConfig


class PropertiesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.properties"
    verbose_name = "Listings"

    def ready(self) -> None:  # pragma: no cover - import side effects
        from . import signals  # noqa: F401
