from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class PharmacartConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pharmacart"
    verbose_name = _("Pharmacy Cart")
