"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details

Redemption outcomes (ok, already, error) are business results and are
always returned with HTTP 200.
"""

import logging

from django.core.cache import cache
from django.utils import timezone
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from credentialing.conf import EngineSettings
from credentialing.domain import (
    AccessZone,
    Capacity,
    CheckinMethod,
    EventId,
    ParticipantId,
    StationId,
    StationSettings,
    TicketTypeId,
)
from credentialing.domain.errors import DomainError, ErrorCode, InvalidIdError
from credentialing.handlers.serializers import (
    AccessControlSerializer,
    AccessControlWriteSerializer,
    BulkCheckinRequestSerializer,
    BulkCheckinResultSerializer,
    CheckinEntrySerializer,
    EventStatsSerializer,
    RedeemRequestSerializer,
    RedemptionResultSerializer,
    ScanRequestSerializer,
    StationSerializer,
    StationWriteSerializer,
    ZoneSerializer,
    ZoneWriteSerializer,
)
from credentialing.services.code_service import CodeService
from credentialing.services.history_service import HistoryService
from credentialing.services.redemption_service import (
    RedemptionOptions,
    RedemptionService,
)
from credentialing.services.registry_service import RegistryService
from credentialing.signals import emit_checkin_recorded, stats_cache_key
from credentialing.stores.django_store import DjangoCheckinStore, DjangoRegistryStore

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.STATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ZONE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_TYPE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNKNOWN_CODE: status.HTTP_404_NOT_FOUND,
    ErrorCode.DUPLICATE_ZONE: status.HTTP_409_CONFLICT,
    ErrorCode.BUSY: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.PERSISTENCE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_response(error: DomainError) -> Response:
    code = _ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST)
    return Response({"error": error.code.value, "message": error.message}, status=code)


def _parse_id(id_class, value: str, kind: str):
    try:
        return id_class.from_string(value)
    except ValueError as exc:
        raise InvalidIdError(kind) from exc


def _redemption_service() -> RedemptionService:
    return RedemptionService(
        DjangoCheckinStore(),
        DjangoRegistryStore(),
        settings=EngineSettings.from_django(),
        clock=timezone.now,
        listeners=[emit_checkin_recorded],
    )


def _registry_service() -> RegistryService:
    return RegistryService(DjangoCheckinStore(), DjangoRegistryStore())


def _redemption_options(data: dict, default_method: CheckinMethod) -> RedemptionOptions:
    station_id = data.get("station_id")
    return RedemptionOptions(
        access_zone=data.get("access_zone") or None,
        station_id=StationId(station_id) if station_id else None,
        operator_id=data.get("operator_id") or None,
        allow_multiple_entries_override=data.get("allow_multiple_entries"),
        method=CheckinMethod(data["method"]) if data.get("method") else default_method,
        notes=data.get("notes", ""),
    )


class DomainAPIView(APIView):
    """Turns domain errors raised by a handler into error responses."""

    def handle_exception(self, exc):
        if isinstance(exc, DomainError):
            if exc.code is ErrorCode.PERSISTENCE_FAILURE:
                logger.error(
                    "Request failed to persist", extra={"path": self.request.path}
                )
            return _error_response(exc)
        if isinstance(exc, ValueError):
            return Response(
                {"error": "INVALID_INPUT", "message": "Invalid input"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return super().handle_exception(exc)


class CheckinListView(DomainAPIView):
    """Handler for GET/POST /api/events/{event_id}/checkins"""

    def get(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        participant_id = request.query_params.get("participant_id")
        pid = (
            _parse_id(ParticipantId, participant_id, "participant ID")
            if participant_id
            else None
        )
        entries = HistoryService(DjangoCheckinStore()).get_history(eid, pid)
        return Response({"results": CheckinEntrySerializer(entries, many=True).data})

    def post(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        serializer = RedeemRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        options = _redemption_options(serializer.validated_data, CheckinMethod.MANUAL)
        result = _redemption_service().redeem(
            serializer.validated_data["code"], eid, options
        )
        return Response(RedemptionResultSerializer(result).data)


class CheckinScanView(DomainAPIView):
    """Handler for POST /api/events/{event_id}/checkins/scan"""

    def post(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        serializer = ScanRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        options = _redemption_options(serializer.validated_data, CheckinMethod.QR)
        result = _redemption_service().redeem_token(
            serializer.validated_data["token"], eid, options
        )
        return Response(RedemptionResultSerializer(result).data)


class BulkCheckinView(DomainAPIView):
    """Handler for POST /api/events/{event_id}/checkins/bulk"""

    def post(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        serializer = BulkCheckinRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        codes = serializer.validated_data["codes"]
        max_codes = EngineSettings.from_django().bulk_max_codes
        if len(codes) > max_codes:
            return Response(
                {
                    "error": "BATCH_TOO_LARGE",
                    "message": f"Batch size {len(codes)} exceeds max of {max_codes}",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        options = _redemption_options(serializer.validated_data, CheckinMethod.BATCH)
        result = _redemption_service().bulk_check_in(codes, eid, options)
        return Response(BulkCheckinResultSerializer(result).data)


class CheckinStatsView(DomainAPIView):
    """Handler for GET /api/events/{event_id}/checkins/stats"""

    def get(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        key = stats_cache_key(eid)
        data = cache.get(key)
        if data is None:
            stats = HistoryService(DjangoCheckinStore()).event_stats(eid)
            data = EventStatsSerializer(stats).data
            cache.set(key, data, EngineSettings.from_django().stats_cache_seconds)
        return Response(data)


class StationListView(DomainAPIView):
    """Handler for GET/POST /api/events/{event_id}/stations"""

    def get(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        registry = _registry_service()
        now = timezone.now()
        stations = registry.list_stations(eid)
        summary = registry.station_summary(eid, now)
        return Response(
            {
                "results": StationSerializer(
                    stations, many=True, context={"now": now}
                ).data,
                "summary": {
                    "total": summary.total,
                    "active": summary.active,
                    "online": summary.online,
                    "total_checkins": summary.total_checkins,
                },
            }
        )

    def post(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        serializer = StationWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        settings = StationSettings(**data.pop("settings", {}))
        station = _registry_service().create_station(eid, settings=settings, **data)
        return Response(
            StationSerializer(station, context={"now": timezone.now()}).data,
            status=status.HTTP_201_CREATED,
        )


class StationDetailView(DomainAPIView):
    """Handler for GET/PATCH /api/stations/{station_id}"""

    def get(self, request: Request, station_id: str) -> Response:
        sid = _parse_id(StationId, station_id, "station ID")
        station = _registry_service().get_station(sid)
        serializer = StationSerializer(station, context={"now": timezone.now()})
        return Response(serializer.data)

    def patch(self, request: Request, station_id: str) -> Response:
        sid = _parse_id(StationId, station_id, "station ID")
        serializer = StationWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        station = _registry_service().update_station(sid, **serializer.validated_data)
        serializer = StationSerializer(station, context={"now": timezone.now()})
        return Response(serializer.data)


class ZoneListView(DomainAPIView):
    """Handler for GET/POST /api/events/{event_id}/zones"""

    def get(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        zones = _registry_service().list_zones(eid)
        return Response({"results": ZoneSerializer(zones, many=True).data})

    def post(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        serializer = ZoneWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        capacity = data.pop("capacity", None)
        zone = AccessZone(
            event_id=eid,
            capacity=Capacity(capacity) if capacity is not None else None,
            required_ticket_types=tuple(
                TicketTypeId(value) for value in data.pop("required_ticket_types", [])
            ),
            **data,
        )
        created = _registry_service().create_zone(zone)
        return Response(ZoneSerializer(created).data, status=status.HTTP_201_CREATED)


class ZoneDetailView(DomainAPIView):
    """Handler for PATCH /api/events/{event_id}/zones/{code}"""

    def patch(self, request: Request, event_id: str, code: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        serializer = ZoneWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        changes.pop("code", None)
        if "capacity" in changes:
            capacity = changes["capacity"]
            changes["capacity"] = Capacity(capacity) if capacity is not None else None
        if "required_ticket_types" in changes:
            changes["required_ticket_types"] = tuple(
                TicketTypeId(value) for value in changes["required_ticket_types"]
            )
        zone = _registry_service().update_zone(eid, code, **changes)
        return Response(ZoneSerializer(zone).data)


class TicketAccessControlView(DomainAPIView):
    """Handler for PATCH /api/events/{id}/ticket-types/{id}/access-control"""

    def patch(self, request: Request, event_id: str, ticket_type_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        tid = _parse_id(TicketTypeId, ticket_type_id, "ticket type ID")
        serializer = AccessControlWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        policy = _registry_service().update_ticket_access_control(
            eid, tid, **serializer.validated_data
        )
        return Response(AccessControlSerializer(policy).data)


class CheckinCodeView(DomainAPIView):
    """Handler for POST /api/events/{event_id}/codes"""

    def post(self, request: Request, event_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        code = CodeService(DjangoCheckinStore()).generate_code(eid)
        return Response({"code": code}, status=status.HTTP_201_CREATED)


class ParticipantTokenView(DomainAPIView):
    """Handler for POST /api/events/{event_id}/participants/{participant_id}/token"""

    def post(self, request: Request, event_id: str, participant_id: str) -> Response:
        eid = _parse_id(EventId, event_id, "event ID")
        pid = _parse_id(ParticipantId, participant_id, "participant ID")
        token = CodeService(DjangoCheckinStore()).issue_token(eid, pid, timezone.now())
        return Response({"token": token}, status=status.HTTP_201_CREATED)
