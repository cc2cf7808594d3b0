from django.apps import AppConfig


class DischargeConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.discharge'
    verbose_name = 'Discharge'

    def ready(self):
        import apps.discharge.receivers  # noqa
