from credentialing.handlers.views import (
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

__all__ = [
    "BulkCheckinView",
    "CheckinCodeView",
    "CheckinListView",
    "CheckinScanView",
    "CheckinStatsView",
    "ParticipantTokenView",
    "StationDetailView",
    "StationListView",
    "TicketAccessControlView",
    "ZoneDetailView",
    "ZoneListView",
]
