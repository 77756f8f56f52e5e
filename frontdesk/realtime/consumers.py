import json
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from rest_framework.exceptions import APIException
from rest_framework_simplejwt.exceptions import TokenError

from frontdesk.authentication import JWTAuthentication
from frontdesk.permissions import appointment_scope
from frontdesk.services.events import UPDATES_GROUP


@database_sync_to_async
def _user_from_token(raw):
    auth = JWTAuthentication()
    try:
        return auth.get_user(auth.get_validated_token(raw))
    except (TokenError, APIException):
        return None


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Front desk screens listening for appointment changes.

    Browsers cannot set headers on a WebSocket, so the access token comes
    in the query string: ``ws/updates/?token=<jwt>``.
    """
    GROUP = UPDATES_GROUP

    async def connect(self):
        user = self.scope.get("user")
        if not getattr(user, "is_authenticated", False):
            token = parse_qs(self.scope.get("query_string", b"").decode()).get("token", [None])[0]
            user = await _user_from_token(token) if token else None
        if user is None or appointment_scope(user) is None:
            await self.close(code=4401)
            return
        self.scope["user"] = user
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def appointment_changed(self, event):
        # event: {"type": "appointment.changed", "appointmentId": int, "doctorId": int, "status": str, "date": str}
        await self.send(json.dumps(event))
