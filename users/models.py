from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    ROLE_CHOICES = [
        ("admin", "Admin"),
        ("office_manager", "Office Manager"),
        ("operator", "Operator"),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="operator")
    office_id = models.CharField(
        max_length=50,
        blank=True,
        help_text="Office the user works at (id from the offices master data)"
    )
    phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_admin(self):
        return self.role == "admin"

    @property
    def is_office_manager(self):
        return self.role == "office_manager"

    @property
    def is_operator(self):
        return self.role == "operator"
