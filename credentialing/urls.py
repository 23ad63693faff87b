from django.urls import path

from credentialing.handlers import (
    BulkCheckinView,
    CheckinCodeView,
    CheckinListView,
    CheckinScanView,
    CheckinStatsView,
    ParticipantTokenView,
    StationDetailView,
    StationListView,
    TicketAccessControlView,
    ZoneDetailView,
    ZoneListView,
)

urlpatterns = [
    path(
        "events/<str:event_id>/checkins",
        CheckinListView.as_view(),
        name="checkin-list",
    ),
    path(
        "events/<str:event_id>/checkins/scan",
        CheckinScanView.as_view(),
        name="checkin-scan",
    ),
    path(
        "events/<str:event_id>/checkins/bulk",
        BulkCheckinView.as_view(),
        name="checkin-bulk",
    ),
    path(
        "events/<str:event_id>/checkins/stats",
        CheckinStatsView.as_view(),
        name="checkin-stats",
    ),
    path(
        "events/<str:event_id>/stations",
        StationListView.as_view(),
        name="station-list",
    ),
    path(
        "stations/<str:station_id>",
        StationDetailView.as_view(),
        name="station-detail",
    ),
    path("events/<str:event_id>/zones", ZoneListView.as_view(), name="zone-list"),
    path(
        "events/<str:event_id>/zones/<str:code>",
        ZoneDetailView.as_view(),
        name="zone-detail",
    ),
    path(
        "events/<str:event_id>/ticket-types/<str:ticket_type_id>/access-control",
        TicketAccessControlView.as_view(),
        name="ticket-access-control",
    ),
    path("events/<str:event_id>/codes", CheckinCodeView.as_view(), name="checkin-code"),
    path(
        "events/<str:event_id>/participants/<str:participant_id>/token",
        ParticipantTokenView.as_view(),
        name="participant-token",
    ),
]
