from typing import Any, Dict
import logging

from config.conf import load_settings
from services.email_service import (
    EmailSendService,
    booking_confirmation_email,
    payment_confirmation_email,
)
from services.errors import EmailDeliveryError


logger = logging.getLogger(__name__)
settings = load_settings()
email_service = EmailSendService(api_key=settings.sendgrid_api_key, sender=settings.email_from)


async def _send_booking_confirmation_task(booking: Dict[str, Any]):
    try:
        return await email_service.send_email(booking_confirmation_email(booking))
    except EmailDeliveryError as e:
        logger.error("Booking confirmation for %s not delivered: %s", booking.get("pnr"), e)
        raise


async def _send_payment_confirmation_task(booking: Dict[str, Any]):
    try:
        return await email_service.send_email(payment_confirmation_email(booking))
    except EmailDeliveryError as e:
        logger.error("Payment confirmation for %s not delivered: %s", booking.get("pnr"), e)
        raise
