from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from coachbot.api.auth import require_webhook_secret
from coachbot.api.normalize import normalize_inbound_payload
from coachbot.api.schemas import InboundMessage, WebhookAck
from coachbot.core.dispatcher import get_dispatcher
from coachbot.messaging.client import TransportError
from coachbot.observability.logging import log
from coachbot.queue.jobs import enqueue_inbound
from coachbot.store.record_repo import StoreError
from coachbot.utils.lock import LockUnavailableError

router = APIRouter()

# WebhookAck.result for failures the caller may want to tell apart
FAILURE_TAGS = (
    (TransportError, "send_failed"),
    (StoreError, "store_failed"),
)

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_payload(request: Request) -> Dict[str, Any]:
    """Twilio posts form fields; testers post JSON. Anything unreadable becomes {}."""
    content_type = (request.headers.get("content-type") or "").lower()
    try:
        if content_type.startswith(FORM_TYPES):
            form = await request.form()
            return dict(form)
        payload = await request.json()
    except Exception:
        return {}
    if isinstance(payload, str):
        return {"body": payload}
    return payload if isinstance(payload, dict) else {}


@router.post("/webhook-reply", response_model=WebhookAck, dependencies=[Depends(require_webhook_secret)])
async def webhook_reply(request: Request):
    """
    Inbound WhatsApp reply. Always acknowledged with 200: delivery retries from
    the provider would only replay a message the dispatcher already saw.
    """
    payload = await _read_payload(request)
    msg = InboundMessage.model_validate(normalize_inbound_payload(payload))
    try:
        result = await run_in_threadpool(get_dispatcher().handle_inbound, msg.sender, msg.body)
    except LockUnavailableError:
        # Subject busy (sweep or earlier reply mid-send): hand the reply to a retrying job
        try:
            rq_job_id = await run_in_threadpool(enqueue_inbound, msg.sender, msg.body)
        except Exception as e:
            log(event="webhook_enqueue_failed", sender=msg.sender, body=msg.body, error=str(e)[:500])
            return WebhookAck(status="error", result="busy")
        log(event="webhook_deferred", sender=msg.sender, rq_job_id=rq_job_id)
        return WebhookAck(status="ok", result="queued")
    except Exception as e:
        log(
            event="webhook_failed",
            sender=msg.sender,
            body=msg.body,
            errorType=type(e).__name__,
            error=str(e)[:500],
        )
        tag = next((t for cls, t in FAILURE_TAGS if isinstance(e, cls)), "error")
        return WebhookAck(status="error", result=tag)
    return WebhookAck(status="ok", result=result.status)
