from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from accounts.models import Specialization
from issues.models import Issue, IssueComment

User = get_user_model()


class Command(BaseCommand):
    help = "Seed the database with sample users and issues."

    def get_or_create_account(self, username, password, **defaults):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com", **defaults},
        )
        if created:
            user.set_password(password)
            user.save()
        return user

    def handle(self, *args, **options):
        admin_user = self.get_or_create_account(
            "civic_admin",
            "AdminPass123!",
            role=User.Role.ADMIN,
            specialization=Specialization.OTHER,
            is_staff=True,
            is_superuser=True,
        )
        officer_user = self.get_or_create_account(
            "pothole_officer",
            "OfficerPass123!",
            role=User.Role.OFFICER,
            specialization=Specialization.POTHOLE,
        )
        citizen_user = self.get_or_create_account("citizen_user", "CitizenPass123!")

        sample_definitions = [
            {
                "title": "Overflowing Garbage Bins",
                "description": "Municipal bins are not being cleared regularly in Zone 2.",
                "specialization": Specialization.GARBAGE,
                "longitude": 77.5946,
                "latitude": 12.9716,
                "status": Issue.Status.PENDING,
            },
            {
                "title": "Potholes on City Road",
                "description": "Large potholes causing traffic congestion and accidents.",
                "specialization": Specialization.POTHOLE,
                "longitude": 77.6101,
                "latitude": 12.9352,
                "status": Issue.Status.IN_PROGRESS,
            },
            {
                "title": "Burst Water Main",
                "description": "Water has been flooding the junction near the public park.",
                "specialization": Specialization.WATER_ISSUE,
                "longitude": 77.5806,
                "latitude": 12.9784,
                "status": Issue.Status.RESOLVED,
            },
        ]

        created_count = 0
        for item in sample_definitions:
            issue, created = Issue.objects.get_or_create(
                user=citizen_user,
                title=item["title"],
                defaults={
                    "description": item["description"],
                    "specialization": item["specialization"],
                    "longitude": item["longitude"],
                    "latitude": item["latitude"],
                    "status": item["status"],
                    "last_status_updated_at": timezone.now()
                    if item["status"] != Issue.Status.PENDING
                    else None,
                },
            )
            if created:
                created_count += 1
                if issue.status != Issue.Status.PENDING:
                    reviewer = officer_user if issue.specialization == officer_user.specialization else admin_user
                    IssueComment.objects.get_or_create(
                        issue=issue,
                        author=f"user:{reviewer.pk}",
                        user=reviewer,
                        content="Issue has been reviewed by the municipal team.",
                    )

        self.stdout.write(self.style.SUCCESS("Seed complete."))
        self.stdout.write(
            self.style.WARNING(
                "Credentials: citizen_user@example.com / CitizenPass123!, "
                "pothole_officer@example.com / OfficerPass123!, "
                "civic_admin@example.com / AdminPass123!"
            )
        )
        self.stdout.write(self.style.SUCCESS(f"New issues created: {created_count}"))
