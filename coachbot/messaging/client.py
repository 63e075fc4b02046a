"""
WhatsApp transport (Twilio)
---------------------------
send_message(address, text) -> message SID, or TransportError.
Callers decide whether a failure aborts the transition (webhook, admin)
or is logged and skipped (sweeps).
"""
from typing import Optional

from twilio.rest import Client

from coachbot.settings import settings
from coachbot.observability.logging import log
import coachbot.observability.metrics as metrics
from coachbot.utils.phone import format_address


class TransportError(RuntimeError):
    def __init__(self, address: str, message: str):
        super().__init__(f"send to {address} failed: {message}")
        self.address = address


_client: Optional[Client] = None


def get_client() -> Client:
    global _client
    if _client is None:
        _client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
    return _client


def _from_address() -> str:
    number = settings.TWILIO_PHONE_NUMBER
    if settings.CHANNEL_SCHEME and not number.startswith(f"{settings.CHANNEL_SCHEME}:"):
        return f"{settings.CHANNEL_SCHEME}:{number}"
    return number


def send_message(address: str, text: str) -> str:
    to = format_address(address)
    try:
        message = get_client().messages.create(body=text, from_=_from_address(), to=to)
    except Exception as e:
        metrics.increment_send_failed()
        log(
            event="send_failed",
            address=address,
            errorType=type(e).__name__,
            error=str(e)[:500],
        )
        raise TransportError(address, f"{type(e).__name__}: {e}") from e

    metrics.increment_sent()
    log(event="message_sent", address=address, sid=getattr(message, "sid", None), text=text)
    return getattr(message, "sid", "") or ""
