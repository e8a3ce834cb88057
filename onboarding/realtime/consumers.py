import json
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from rest_framework.exceptions import APIException

from onboarding.authentication import authenticate_bearer
from onboarding.permissions import authorize
from onboarding.services.broadcast import GROUP_ALL, application_group


class OnboardingUpdatesConsumer(AsyncWebsocketConsumer):
    """Streams onboarding events to staff.

    ``ws/onboarding/`` joins the all-applications group;
    ``ws/onboarding/<id>/`` follows a single application.  A session user
    or a JWT passed as ``?token=`` must hold ``onboarding:read``.
    """

    async def connect(self):
        user = await self._resolve_user()
        if not authorize(user, 'onboarding', 'read'):
            await self.close(code=4403)
            return
        application_id = self.scope.get('url_route', {}).get('kwargs', {}).get('application_id')
        self.group = application_group(application_id) if application_id else GROUP_ALL
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({'type': 'welcome', 'group': self.group}))

    async def disconnect(self, close_code):
        group = getattr(self, 'group', None)
        if group:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def _resolve_user(self):
        user = self.scope.get('user')
        if user is not None and getattr(user, 'is_authenticated', False):
            return user
        query = parse_qs((self.scope.get('query_string') or b'').decode())
        token = (query.get('token') or [None])[0]
        if not token:
            return None
        try:
            return await database_sync_to_async(authenticate_bearer)(token)
        except APIException:
            return None

    async def onboarding_event(self, event):
        # event: {"type": "onboarding.event", "event": "...", "applicationId": int, ...}
        await self.send(json.dumps({k: v for k, v in event.items() if k != 'type'} | {'type': 'event'}))

    async def broadcast_refresh(self, event):
        # event: {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": [...]}
        await self.send(json.dumps(event))
