from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class TransactionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tradefair.transactions"
    verbose_name = _("Transactions")

    def ready(self):
        import tradefair.transactions.signals  # noqa: F401, PLC0415
