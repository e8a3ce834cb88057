"""
WSGI entry point for synchronous deployments (gunicorn, uwsgi).

Websocket progress streams need the ASGI application in ``hmso.asgi``;
a WSGI-only deployment serves the REST API and skips realtime updates.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hmso.settings')

application = get_wsgi_application()
