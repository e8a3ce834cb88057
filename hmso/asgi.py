"""
ASGI entry point: Django for HTTP, Channels for the onboarding websockets.

Settings must be configured and the app registry populated before the
consumer module is imported, since it pulls in models through the
permission and authentication helpers.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hmso.settings")

import django  # noqa: E402

django.setup()

from channels.auth import AuthMiddlewareStack  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.core.asgi import get_asgi_application  # noqa: E402
from django.urls import path  # noqa: E402

from onboarding.realtime.consumers import OnboardingUpdatesConsumer  # noqa: E402

http_app = get_asgi_application()

# dashboard feed, then the per-application feed
websocket_urlpatterns = [
    path("ws/onboarding/", OnboardingUpdatesConsumer.as_asgi()),
    path("ws/onboarding/<int:application_id>/", OnboardingUpdatesConsumer.as_asgi()),
]

application = ProtocolTypeRouter({
    "http": http_app,
    "websocket": AuthMiddlewareStack(URLRouter(websocket_urlpatterns)),
})
