from django.apps import AppConfig


class CredentialingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "credentialing"

    def ready(self) -> None:
        from credentialing import signals  # noqa: F401
