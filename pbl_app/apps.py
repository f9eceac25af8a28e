from django.apps import AppConfig


class PblAppConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'pbl_app'
    verbose_name = 'PBL Registration'
