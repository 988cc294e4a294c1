from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Custom user model.

    `tenant` is the organization the user operates in; it is used to validate
    the X-Tenant-ID header and to pick the websocket group.
    """

    name = models.CharField(max_length=255, blank=True)
    tenant = models.ForeignKey(
        'tenants.Tenant',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='users',
        help_text="Tenant this user belongs to",
    )

    def __str__(self):
        return self.name or self.username
