from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from accounts.models import Specialization

from .geo import GeoPoint


class Issue(models.Model):
    class Status(models.TextChoices):
        PENDING = "Pending", "Pending"
        IN_PROGRESS = "In Progress", "In Progress"
        RESOLVED = "Resolved", "Resolved"

    title = models.CharField(max_length=255)
    description = models.TextField()
    specialization = models.CharField(max_length=50, choices=Specialization.choices)
    longitude = models.FloatField(validators=[MinValueValidator(-180), MaxValueValidator(180)])
    latitude = models.FloatField(validators=[MinValueValidator(-90), MaxValueValidator(90)])
    photo = models.FileField(upload_to="issue_photos/%Y/%m/%d/", blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="issues",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    last_status_updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.title} ({self.status})"

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(self.longitude, self.latitude)

    @location.setter
    def location(self, point: GeoPoint):
        self.longitude, self.latitude = point.longitude, point.latitude

    def liker_tokens(self) -> list:
        return [like.liker for like in self.likes.all()]

    def as_dict(self) -> dict:
        comment_count = getattr(self, "comment_total", None)
        if comment_count is None:
            comment_count = self.comments.count()
        return {
            "id": self.pk,
            "title": self.title,
            "description": self.description,
            "specialization": self.specialization,
            "location": self.location.as_geojson(),
            "photo": self.photo.url if self.photo else "",
            "status": self.status,
            "user": self.user_id,
            "likes": self.liker_tokens(),
            "comment_count": comment_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "last_status_updated_at": (
                self.last_status_updated_at.isoformat() if self.last_status_updated_at else None
            ),
        }


class IssueLike(models.Model):
    issue = models.ForeignKey(
        Issue,
        on_delete=models.CASCADE,
        related_name="likes",
    )
    liker = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["issue", "liker"], name="unique_issue_liker"),
        ]

    def __str__(self):
        return f"{self.liker} likes #{self.issue_id}"


class IssueComment(models.Model):
    issue = models.ForeignKey(
        Issue,
        on_delete=models.CASCADE,
        related_name="comments",
    )
    content = models.TextField()
    author = models.CharField(max_length=255)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="issue_comments",
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.author} on #{self.issue_id}"

    def as_dict(self) -> dict:
        return {
            "id": self.pk,
            "issue": self.issue_id,
            "content": self.content,
            "author": {"username": "Anonymous"},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
