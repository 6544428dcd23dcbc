import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

EVENT_STATUS_CHOICES = [
    ("DRAFT", "Draft"),
    ("SUBMITTED", "Submitted"),
    ("PENDING_APPROVAL", "Pending Approval"),
    ("APPROVED", "Approved"),
    ("REJECTED", "Rejected"),
    ("COMPLETED", "Completed"),
    ("CANCELLED", "Cancelled"),
]

REGISTRATION_STATUS_CHOICES = [
    ("PENDING", "Pending"),
    ("APPROVED", "Approved"),
    ("REJECTED", "Rejected"),
    ("CANCELLED", "Cancelled"),
    ("ATTENDED", "Attended"),
]

NOTIFICATION_TYPE_CHOICES = [
    ("EVENT_APPROVED", "Event Approved"),
    ("EVENT_REJECTED", "Event Rejected"),
    ("EVENT_CANCELLED", "Event Cancelled"),
    ("NEW_REGISTRATION", "New Registration"),
    ("REGISTRATION_APPROVED", "Registration Approved"),
    ("REGISTRATION_REJECTED", "Registration Rejected"),
    ("REGISTRATION_CANCELLED", "Registration Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("category", models.CharField(blank=True, max_length=100)),
                ("starts_at", models.DateTimeField()),
                ("ends_at", models.DateTimeField()),
                ("registration_opens_at", models.DateTimeField(blank=True, null=True)),
                ("registration_closes_at", models.DateTimeField(blank=True, null=True)),
                ("max_participants", models.PositiveIntegerField()),
                ("current_participants", models.PositiveIntegerField(default=0)),
                ("status", models.CharField(choices=EVENT_STATUS_CHOICES, default="DRAFT", max_length=20)),
                ("submission_note", models.TextField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "creator",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="created_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["-created_at"], name="event_created_idx"),
                    models.Index(fields=["status", "-created_at"], name="event_status_created_idx"),
                    models.Index(fields=["creator", "-created_at"], name="event_creator_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(max_participants__gt=0),
                        name="event_max_participants_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(current_participants__gte=0)
                        & models.Q(current_participants__lte=models.F("max_participants")),
                        name="event_current_participants_within_capacity",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "status",
                    models.CharField(choices=REGISTRATION_STATUS_CHOICES, default="PENDING", max_length=20),
                ),
                ("applied_at", models.DateTimeField()),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registrations",
                        to="volunteering.event",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registrations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-applied_at"],
                "indexes": [
                    models.Index(fields=["event", "status"], name="registration_event_status_idx"),
                    models.Index(fields=["user", "-applied_at"], name="registration_user_applied_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(status__in=["APPROVED", "ATTENDED", "PENDING"]),
                        fields=("user", "event"),
                        name="registration_one_active_per_user_event",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("type", models.CharField(choices=NOTIFICATION_TYPE_CHOICES, max_length=40)),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["recipient", "is_read", "-created_at"], name="notification_inbox_idx"
                    ),
                ],
            },
        ),
    ]
