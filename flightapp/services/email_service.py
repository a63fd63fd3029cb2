"""
Outgoing transactional email (booking and payment confirmations) over the
SendGrid v3 REST API.
"""
import asyncio
import logging
from typing import Optional, Dict, Any, List
from pydantic import BaseModel
import requests
from requests.exceptions import RequestException

import config.conf as conf
from services.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


class EmailRequest(BaseModel):
    to: str
    subject: str
    text: str
    html: Optional[str] = None


class EmailSendService:

    def __init__(self, api_key: Optional[str] = None, sender: Optional[str] = None, url: str = conf.SENDGRID_URL):
        self.api_key = api_key
        self.sender = sender or "bookings@onboardticket.com"
        self.url = url

    def is_configured(self) -> bool:
        return bool(self.api_key) and "placeholder" not in self.api_key

    def format_payload(self, req: EmailRequest) -> Dict[str, Any]:
        content: List[Dict[str, str]] = [{"type": "text/plain", "value": req.text}]
        if req.html:
            content.append({"type": "text/html", "value": req.html})

        return {
            "personalizations": [{"to": [{"email": req.to}]}],
            "from": {"email": self.sender},
            "subject": req.subject,
            "content": content,
        }

    async def send_email(self, email_req: EmailRequest) -> Dict[str, Any]:
        if not self.is_configured():
            logger.info("SendGrid not configured, skipping email to %s", email_req.to)
            return {"status": "skipped"}

        payload = self.format_payload(email_req)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            # requests is blocking; keep it off the event loop
            response = await asyncio.to_thread(
                requests.post, self.url, headers=headers, json=payload, timeout=10
            )
            response.raise_for_status()
            return {"status": "sent", "message_id": response.headers.get("X-Message-Id")}

        except RequestException as error:
            logger.error("Email delivery to %s failed: %s", email_req.to, error)
            raise EmailDeliveryError(f"Failed to contact SendGrid: {error}") from error


def booking_confirmation_email(booking: Dict[str, Any]) -> EmailRequest:
    route = f"{booking['from_airport']} → {booking['to_airport']}"
    text = (
        f"Thank you for your booking.\n\n"
        f"Booking reference: {booking['pnr']}\n"
        f"Route: {route}\n"
        f"Departure: {booking['departure_date']}\n"
        f"Total: {booking['total_amount']} {booking['currency']}\n\n"
        f"Use your booking reference and this email address to look up or pay for your booking."
    )
    return EmailRequest(
        to=booking["contact_email"],
        subject=f"Booking received - {booking['pnr']}",
        text=text,
    )


def payment_confirmation_email(booking: Dict[str, Any]) -> EmailRequest:
    text = (
        f"Your payment for booking {booking['pnr']} has been received.\n"
        f"Your booking is now confirmed."
    )
    return EmailRequest(
        to=booking["contact_email"],
        subject=f"Booking confirmed - {booking['pnr']}",
        text=text,
    )
