from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class UserRole(models.TextChoices):
    PICKER = "picker", "Picker"
    PACKER = "packer", "Packer"
    STOCK_CONTROLLER = "stock_controller", "Stock Controller"
    SUPERVISOR = "supervisor", "Supervisor"
    ADMIN = "admin", "Admin"


class User(AbstractUser):
    role = models.CharField(max_length=20, choices=UserRole.choices, default=UserRole.PICKER)
    active_role = models.CharField(
        max_length=20, choices=UserRole.choices, null=True, blank=True,
        help_text="Role the user has switched into; falls back to the base role",
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
    def base_role(self):
        return self.role

    @property
    def effective_role(self):
        return self.active_role or self.role

    @property
    def is_admin(self):
        return self.effective_role == UserRole.ADMIN

    @property
    def is_supervisor(self):
        return self.effective_role == UserRole.SUPERVISOR

    def available_roles(self):
        """Base role plus every active granted role."""
        granted = self.role_assignments.filter(is_active=True).values_list("role", flat=True)
        return [self.role] + [r for r in granted if r != self.role]


class RoleAssignment(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="role_assignments")
    role = models.CharField(max_length=20, choices=UserRole.choices)
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="granted_roles"
    )
    is_active = models.BooleanField(default=True)
    granted_at = models.DateTimeField(auto_now_add=True)
    revoked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "role_assignments"
        ordering = ["-granted_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "role"], condition=models.Q(is_active=True), name="uniq_active_role_assignment"
            ),
        ]

    def __str__(self):
        return f"{self.user.username} -> {self.role}"
