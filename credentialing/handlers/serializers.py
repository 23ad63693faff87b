"""Serializers for request validation and for rendering domain models.

Output serializers read attributes straight off the frozen domain
dataclasses; value objects render through their ``__str__``.
"""

from rest_framework import serializers

from credentialing.domain import CheckinMethod
from credentialing.services.registry_service import station_status

_METHOD_CHOICES = [m.value for m in CheckinMethod]


# Requests


class RedemptionOptionsSerializer(serializers.Serializer):
    access_zone = serializers.SlugField(max_length=64, required=False, allow_null=True)
    station_id = serializers.UUIDField(required=False, allow_null=True)
    operator_id = serializers.CharField(max_length=64, required=False, allow_null=True)
    allow_multiple_entries = serializers.BooleanField(
        required=False, allow_null=True, default=None
    )
    method = serializers.ChoiceField(choices=_METHOD_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class RedeemRequestSerializer(RedemptionOptionsSerializer):
    code = serializers.CharField(max_length=64, trim_whitespace=True)


class ScanRequestSerializer(RedemptionOptionsSerializer):
    token = serializers.CharField(max_length=2048)


class BulkCheckinRequestSerializer(serializers.Serializer):
    codes = serializers.ListField(
        child=serializers.CharField(max_length=64), allow_empty=False
    )
    station_id = serializers.UUIDField(required=False, allow_null=True)
    operator_id = serializers.CharField(max_length=64, required=False, allow_null=True)


class StationSettingsSerializer(serializers.Serializer):
    sound_enabled = serializers.BooleanField(required=False)
    autoprint = serializers.BooleanField(required=False)
    require_confirmation = serializers.BooleanField(required=False)
    advanced_mode = serializers.BooleanField(required=False)
    label_template_id = serializers.CharField(
        max_length=64, required=False, allow_blank=True
    )
    printer_name = serializers.CharField(
        max_length=100, required=False, allow_blank=True
    )


class StationWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)
    zone_code = serializers.SlugField(
        max_length=64, required=False, allow_null=True, allow_blank=True
    )
    operator_id = serializers.CharField(max_length=64, required=False, allow_null=True)
    operator_name = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )
    settings = StationSettingsSerializer(required=False)


class ZoneWriteSerializer(serializers.Serializer):
    code = serializers.SlugField(max_length=64)
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    color = serializers.CharField(max_length=16, required=False)
    is_active = serializers.BooleanField(required=False)
    capacity = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    starts_at_time = serializers.TimeField(required=False, allow_null=True)
    ends_at_time = serializers.TimeField(required=False, allow_null=True)
    required_ticket_types = serializers.ListField(
        child=serializers.UUIDField(), required=False
    )


class AccessControlWriteSerializer(serializers.Serializer):
    allow_multiple_entries = serializers.BooleanField(required=False)
    max_entries_per_day = serializers.IntegerField(min_value=0, required=False)
    valid_days = serializers.ListField(child=serializers.DateField(), required=False)
    access_zones = serializers.ListField(
        child=serializers.SlugField(max_length=64), required=False
    )
    requires_escort = serializers.BooleanField(required=False)
    special_permissions = serializers.ListField(
        child=serializers.CharField(max_length=64), required=False
    )


# Responses


class CheckinEntrySerializer(serializers.Serializer):
    sequence = serializers.IntegerField()
    ticket_id = serializers.CharField()
    participant_id = serializers.CharField()
    event_id = serializers.CharField()
    ticket_type_id = serializers.CharField()
    checked_in_at = serializers.DateTimeField()
    entry_number = serializers.IntegerField()
    access_zone = serializers.CharField(allow_null=True)
    station_id = serializers.CharField(allow_null=True)
    operator_id = serializers.CharField(allow_null=True)
    method = serializers.CharField(source="method.value")
    notes = serializers.CharField()


class RedemptionResultSerializer(serializers.Serializer):
    status = serializers.CharField()
    message = serializers.CharField()
    entry_number = serializers.IntegerField(allow_null=True)
    participant_id = serializers.CharField(source="participant.id", allow_null=True)
    participant_name = serializers.CharField(source="participant.name", allow_null=True)


class BulkCheckinResultSerializer(serializers.Serializer):
    successful = serializers.IntegerField()
    failed = serializers.IntegerField()
    already_checked = serializers.IntegerField()
    processed = serializers.IntegerField()
    cancelled = serializers.BooleanField()


class StationSerializer(serializers.Serializer):
    id = serializers.CharField()
    event_id = serializers.CharField()
    name = serializers.CharField()
    location = serializers.CharField()
    description = serializers.CharField()
    is_active = serializers.BooleanField()
    zone_code = serializers.CharField(allow_null=True)
    operator_id = serializers.CharField(allow_null=True)
    operator_name = serializers.CharField()
    checked_in_count = serializers.IntegerField()
    last_activity = serializers.DateTimeField(allow_null=True)
    status = serializers.SerializerMethodField()
    settings = StationSettingsSerializer()

    def get_status(self, station) -> str:
        return station_status(station, self.context["now"]).value


class ZoneSerializer(serializers.Serializer):
    code = serializers.CharField()
    event_id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField()
    color = serializers.CharField()
    is_active = serializers.BooleanField()
    capacity = serializers.IntegerField(source="capacity.value", allow_null=True)
    current_occupancy = serializers.IntegerField()
    starts_at_time = serializers.TimeField(allow_null=True)
    ends_at_time = serializers.TimeField(allow_null=True)
    required_ticket_types = serializers.ListField(child=serializers.CharField())


class AccessControlSerializer(serializers.Serializer):
    allow_multiple_entries = serializers.BooleanField()
    max_entries_per_day = serializers.IntegerField()
    valid_days = serializers.SerializerMethodField()
    access_zones = serializers.SerializerMethodField()
    requires_escort = serializers.BooleanField()
    special_permissions = serializers.ListField(child=serializers.CharField())

    def get_valid_days(self, policy) -> list[str]:
        return sorted(day.isoformat() for day in policy.valid_days)

    def get_access_zones(self, policy) -> list[str]:
        return sorted(policy.access_zones)


class EventStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    checked_in = serializers.IntegerField()
    pending = serializers.IntegerField()
    checkin_rate = serializers.FloatField()
    multiple_entries = serializers.IntegerField()
    total_entries = serializers.IntegerField()
