from django.apps import AppConfig


class DjangoOrdersConfig(AppConfig):
    name = "django_orders"
    verbose_name = "Orders"
    default_auto_field = "django.db.models.BigAutoField"
