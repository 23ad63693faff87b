import uuid

import credentialing.models
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                (
                    "timezone",
                    models.CharField(
                        default="UTC",
                        max_length=64,
                        validators=[credentialing.models.validate_timezone],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="TicketType",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=100)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("quantity_total", models.PositiveIntegerField()),
                ("quantity_sold", models.PositiveIntegerField(default=0)),
                ("sale_starts_at", models.DateTimeField(blank=True, null=True)),
                ("sale_ends_at", models.DateTimeField(blank=True, null=True)),
                (
                    "max_per_purchase",
                    models.PositiveIntegerField(blank=True, null=True),
                ),
                (
                    "visibility",
                    models.CharField(
                        choices=[("public", "Public"), ("private", "Private")],
                        default="public",
                        max_length=10,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("allow_multiple_entries", models.BooleanField(default=False)),
                ("max_entries_per_day", models.PositiveIntegerField(default=0)),
                ("valid_days", models.JSONField(blank=True, default=list)),
                ("access_zones", models.JSONField(blank=True, default=list)),
                ("requires_escort", models.BooleanField(default=False)),
                ("special_permissions", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ticket_types",
                        to="credentialing.event",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["event"], name="ticket_type_event_idx")
                ],
            },
        ),
        migrations.CreateModel(
            name="Participant",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=40)),
                ("code", models.CharField(max_length=32)),
                ("qr_payload", models.TextField(blank=True)),
                ("order_number", models.CharField(blank=True, max_length=32)),
                ("is_manual", models.BooleanField(default=False)),
                ("checked_in", models.BooleanField(default=False)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="credentialing.event",
                    ),
                ),
                (
                    "ticket_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="participants",
                        to="credentialing.tickettype",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("event", "code"),
                        name="unique_participant_code_per_event",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CheckinEntry",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("checked_in_at", models.DateTimeField()),
                ("entry_number", models.PositiveIntegerField()),
                ("access_zone", models.CharField(blank=True, max_length=64)),
                ("station_id", models.UUIDField(blank=True, null=True)),
                ("operator_id", models.CharField(blank=True, max_length=64)),
                (
                    "method",
                    models.CharField(
                        choices=[("qr", "Qr"), ("manual", "Manual"), ("lote", "Batch")],
                        default="qr",
                        max_length=10,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="checkins",
                        to="credentialing.event",
                    ),
                ),
                (
                    "participant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="checkins",
                        to="credentialing.participant",
                    ),
                ),
                (
                    "ticket_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="checkins",
                        to="credentialing.tickettype",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "checkin entries",
                "indexes": [
                    models.Index(
                        fields=["event", "participant"],
                        name="checkin_event_participant_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("participant", "entry_number"),
                        name="unique_entry_number_per_participant",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AccessZone",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("code", models.SlugField(max_length=64)),
                ("name", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True)),
                ("color", models.CharField(default="#3b82f6", max_length=16)),
                ("is_active", models.BooleanField(default=True)),
                ("capacity", models.PositiveIntegerField(blank=True, null=True)),
                ("current_occupancy", models.PositiveIntegerField(default=0)),
                ("starts_at_time", models.TimeField(blank=True, null=True)),
                ("ends_at_time", models.TimeField(blank=True, null=True)),
                ("required_ticket_types", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="access_zones",
                        to="credentialing.event",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("event", "code"), name="unique_zone_code_per_event"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CheckinStation",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=100)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("zone_code", models.SlugField(blank=True, max_length=64)),
                ("operator_id", models.CharField(blank=True, max_length=64)),
                ("operator_name", models.CharField(blank=True, max_length=255)),
                ("checked_in_count", models.PositiveBigIntegerField(default=0)),
                ("last_activity", models.DateTimeField(blank=True, null=True)),
                ("sound_enabled", models.BooleanField(default=True)),
                ("autoprint", models.BooleanField(default=False)),
                ("require_confirmation", models.BooleanField(default=False)),
                ("advanced_mode", models.BooleanField(default=False)),
                ("label_template_id", models.CharField(blank=True, max_length=64)),
                ("printer_name", models.CharField(blank=True, max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stations",
                        to="credentialing.event",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
    ]
