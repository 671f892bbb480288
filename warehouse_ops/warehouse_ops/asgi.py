"""
ASGI config for the warehouse_ops project.

HTTP goes to Django; websockets go to the warehouse event stream.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "warehouse_ops.settings")

from django.core.asgi import get_asgi_application

django_asgi_app = get_asgi_application()

from channels.auth import AuthMiddlewareStack
from channels.routing import ProtocolTypeRouter, URLRouter

from notifications.routing import websocket_urlpatterns

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": AuthMiddlewareStack(URLRouter(websocket_urlpatterns)),
})
