"""Django signals for cache invalidation and redemption notifications.

``checkin_recorded`` is sent after a redemption is committed. The
surrounding application connects notification senders to it; this app
only emits it.
"""

from django.core.cache import cache
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from credentialing.domain import CheckinEntry
from credentialing.models import CheckinEntry as CheckinEntryRow
from credentialing.models import Participant

# Sent with ``entry`` (a domain CheckinEntry)
checkin_recorded = Signal()


def stats_cache_key(event_id: object) -> str:
    return f"checkins:{event_id}:stats"


def emit_checkin_recorded(entry: CheckinEntry) -> None:
    """Redemption listener bridging the service to the Django signal."""
    checkin_recorded.send(sender=CheckinEntry, entry=entry)


@receiver(post_save, sender=CheckinEntryRow)
def invalidate_stats_on_checkin(sender, instance, **kwargs):
    """Invalidate the stats cache when a ledger entry is written."""
    key = stats_cache_key(instance.event_id)
    transaction.on_commit(lambda: cache.delete(key))


@receiver([post_save, post_delete], sender=Participant)
def invalidate_stats_on_participant(sender, instance, **kwargs):
    """Invalidate the stats cache when participants change."""
    cache.delete(stats_cache_key(instance.event_id))
