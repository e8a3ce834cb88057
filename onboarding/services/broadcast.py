"""
Realtime fan-out of onboarding events over the channel layer.

Events go to two groups: ``onboarding`` (staff dashboards) and
``onboarding.<application id>`` (one application's watchers).  Sending
is fire-and-forget; a missing or failing channel layer only logs.
"""
from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)

GROUP_ALL = 'onboarding'


def application_group(application_id: int) -> str:
    return f"{GROUP_ALL}.{application_id}"


def publish(application, event: str, **payload) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    message = {
        'type': 'onboarding.event',
        'event': event,
        'applicationId': application.id,
        'applicationNumber': application.application_number,
        'status': application.status,
        'ts': timezone.now().isoformat(),
        **payload,
    }
    try:
        for group in (GROUP_ALL, application_group(application.id)):
            async_to_sync(channel_layer.group_send)(group, message)
    except Exception:
        logger.exception('broadcast of %s for application %s failed', event, application.id)


def publish_refresh(keys: list[str]) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    now = timezone.now()
    try:
        async_to_sync(channel_layer.group_send)(GROUP_ALL, {
            'type': 'broadcast.refresh',
            'version': int(now.timestamp()),
            'ts': now.isoformat(),
            'keys': keys[:50],
        })
    except Exception:
        logger.exception('cache refresh broadcast failed')
