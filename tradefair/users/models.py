from django.contrib.auth.models import AbstractUser
from django.db.models import BooleanField
from django.db.models import CharField
from django.db.models import DateTimeField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    """
    Default custom user model for TradeFair.
    Platform admins are flagged with ``is_admin``; Django staff are treated
    the same way for realtime announcements.
    """

    # First and last name do not cover name patterns around the globe
    name = CharField(_("Full Name"), blank=True, max_length=255)
    email = EmailField(_("email address"), unique=True)
    is_admin = BooleanField(
        _("platform admin"),
        default=False,
        help_text=_("Receives announcements about new deposits and withdrawals."),
    )
    # Audit timestamps
    created_at = DateTimeField(auto_now_add=True)
    updated_at = DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if not self.name:
            self.name = f"{self.first_name} {self.last_name}".strip()
        super().save(*args, **kwargs)

    @property
    def receives_admin_updates(self) -> bool:
        return bool(self.is_admin or self.is_staff or self.is_superuser)
