"""Push appointment changes to connected front desk screens."""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

UPDATES_GROUP = 'frontdesk.updates'


def publish_appointment(appointment) -> None:
    """Broadcast once the surrounding transaction commits."""
    payload = {
        'type': 'appointment.changed',
        'appointmentId': appointment.id,
        'doctorId': appointment.doctor_id,
        'status': appointment.status,
        'date': str(appointment.appointment_date),
    }
    transaction.on_commit(lambda: _send(payload))


def _send(payload: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(UPDATES_GROUP, payload)
    except Exception:
        logger.warning('could not publish %s for appointment %s', payload['type'], payload['appointmentId'], exc_info=True)
