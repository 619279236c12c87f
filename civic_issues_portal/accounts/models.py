from django.contrib.auth.models import AbstractUser
from django.db import models


class Specialization(models.TextChoices):
    WATER_ISSUE = "Water Issue", "Water Issue"
    SANITATION = "Sanitation", "Sanitation"
    POTHOLE = "Pothole", "Pothole"
    GARBAGE = "Garbage", "Garbage"
    TRAFFIC = "Traffic", "Traffic"
    OTHER = "Other", "Other"


class User(AbstractUser):
    class Role(models.TextChoices):
        USER = "user", "User"
        OFFICER = "officer", "Officer"
        ADMIN = "admin", "Admin"

    STAFF_ROLES = (Role.OFFICER, Role.ADMIN)

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)
    specialization = models.CharField(
        max_length=50,
        choices=Specialization.choices,
        blank=True,
    )

    def __str__(self):
        return self.username

    @property
    def requires_specialization(self) -> bool:
        return self.role in self.STAFF_ROLES

    def public_view(self) -> dict:
        return {
            "id": self.pk,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "specialization": self.specialization,
        }
