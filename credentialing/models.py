"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
Ledger rows reference participants, stations and operators but never
cascade: check-in entries outlive whatever they point at.
"""

import uuid
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.core.exceptions import ValidationError
from django.db import models


def validate_timezone(value: str) -> None:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {value}", code="invalid") from exc


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    timezone = models.CharField(
        max_length=64, default="UTC", validators=[validate_timezone]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name


class TicketType(models.Model):
    """Persistence model for ticket types and their access policy."""

    class Visibility(models.TextChoices):
        PUBLIC = "public"
        PRIVATE = "private"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(
        Event, on_delete=models.CASCADE, related_name="ticket_types"
    )
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity_total = models.PositiveIntegerField()
    quantity_sold = models.PositiveIntegerField(default=0)
    sale_starts_at = models.DateTimeField(blank=True, null=True)
    sale_ends_at = models.DateTimeField(blank=True, null=True)
    max_per_purchase = models.PositiveIntegerField(blank=True, null=True)
    visibility = models.CharField(
        max_length=10, choices=Visibility.choices, default=Visibility.PUBLIC
    )
    is_active = models.BooleanField(default=True)

    allow_multiple_entries = models.BooleanField(default=False)
    max_entries_per_day = models.PositiveIntegerField(default=0)
    valid_days = models.JSONField(default=list, blank=True)
    access_zones = models.JSONField(default=list, blank=True)
    requires_escort = models.BooleanField(default=False)
    special_permissions = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["event"], name="ticket_type_event_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.price}"


class Participant(models.Model):
    """Persistence model for a ticket holder.

    ``checked_in``/``checked_in_at`` are a cache of the ledger.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(
        Event, on_delete=models.CASCADE, related_name="participants"
    )
    ticket_type = models.ForeignKey(
        TicketType, on_delete=models.PROTECT, related_name="participants"
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=40, blank=True)
    code = models.CharField(max_length=32)
    qr_payload = models.TextField(blank=True)
    order_number = models.CharField(max_length=32, blank=True)
    is_manual = models.BooleanField(default=False)
    checked_in = models.BooleanField(default=False)
    checked_in_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["event", "code"], name="unique_participant_code_per_event"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class CheckinEntry(models.Model):
    """Append-only ledger row. The primary key is the append sequence."""

    class Method(models.TextChoices):
        QR = "qr"
        MANUAL = "manual"
        BATCH = "lote"

    id = models.BigAutoField(primary_key=True)
    participant = models.ForeignKey(
        Participant, on_delete=models.PROTECT, related_name="checkins"
    )
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="checkins")
    ticket_type = models.ForeignKey(
        TicketType, on_delete=models.PROTECT, related_name="checkins"
    )
    checked_in_at = models.DateTimeField()
    entry_number = models.PositiveIntegerField()
    access_zone = models.CharField(max_length=64, blank=True)
    station_id = models.UUIDField(blank=True, null=True)
    operator_id = models.CharField(max_length=64, blank=True)
    method = models.CharField(max_length=10, choices=Method.choices, default=Method.QR)
    notes = models.TextField(blank=True)

    class Meta:
        verbose_name_plural = "checkin entries"
        constraints = [
            models.UniqueConstraint(
                fields=["participant", "entry_number"],
                name="unique_entry_number_per_participant",
            ),
        ]
        indexes = [
            models.Index(
                fields=["event", "participant"], name="checkin_event_participant_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.participant_id} #{self.entry_number}"


class AccessZone(models.Model):
    """Persistence model for access zones."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(
        Event, on_delete=models.CASCADE, related_name="access_zones"
    )
    code = models.SlugField(max_length=64)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    color = models.CharField(max_length=16, default="#3b82f6")
    is_active = models.BooleanField(default=True)
    capacity = models.PositiveIntegerField(blank=True, null=True)
    current_occupancy = models.PositiveIntegerField(default=0)
    starts_at_time = models.TimeField(blank=True, null=True)
    ends_at_time = models.TimeField(blank=True, null=True)
    required_ticket_types = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["event", "code"], name="unique_zone_code_per_event"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class CheckinStation(models.Model):
    """Persistence model for check-in stations."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="stations")
    name = models.CharField(max_length=100)
    location = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    zone_code = models.SlugField(max_length=64, blank=True)
    operator_id = models.CharField(max_length=64, blank=True)
    operator_name = models.CharField(max_length=255, blank=True)
    checked_in_count = models.PositiveBigIntegerField(default=0)
    last_activity = models.DateTimeField(blank=True, null=True)
    sound_enabled = models.BooleanField(default=True)
    autoprint = models.BooleanField(default=False)
    require_confirmation = models.BooleanField(default=False)
    advanced_mode = models.BooleanField(default=False)
    label_template_id = models.CharField(max_length=64, blank=True)
    printer_name = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name
