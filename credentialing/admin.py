from django.contrib import admin

from credentialing.models import (
    AccessZone,
    CheckinEntry,
    CheckinStation,
    Event,
    Participant,
    TicketType,
)


class TicketTypeInline(admin.TabularInline):
    model = TicketType
    extra = 1
    fields = [
        "name",
        "price",
        "quantity_total",
        "allow_multiple_entries",
        "max_entries_per_day",
    ]


class AccessZoneInline(admin.TabularInline):
    model = AccessZone
    extra = 0
    fields = ["code", "name", "is_active", "capacity"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "timezone", "created_at"]
    search_fields = ["name"]
    inlines = [TicketTypeInline, AccessZoneInline]


@admin.register(TicketType)
class TicketTypeAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "event",
        "price",
        "allow_multiple_entries",
        "max_entries_per_day",
    ]
    list_filter = ["event"]


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "code",
        "event",
        "ticket_type",
        "checked_in",
        "checked_in_at",
    ]
    list_filter = ["event", "checked_in", "is_manual"]
    search_fields = ["name", "code", "email", "order_number"]
    readonly_fields = ["checked_in", "checked_in_at"]


@admin.register(CheckinEntry)
class CheckinEntryAdmin(admin.ModelAdmin):
    """Read-only view of the ledger. Corrections are new entries."""

    list_display = [
        "participant",
        "entry_number",
        "checked_in_at",
        "method",
        "access_zone",
    ]
    list_filter = ["event", "method"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CheckinStation)
class CheckinStationAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "event",
        "zone_code",
        "is_active",
        "checked_in_count",
        "last_activity",
    ]
    list_filter = ["event", "is_active"]
    readonly_fields = ["checked_in_count", "last_activity"]
