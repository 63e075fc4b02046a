def normalize_inbound_payload(payload: dict) -> dict:
    """
    Accepts the inbound shapes seen in practice and converts them into the
    canonical {"from": ..., "body": ...} expected by InboundMessage:

    - Twilio form fields:        From, Body
    - lower-case JSON variants:  from, body
    - generic chat testers:      sender / phone, text / message
    """
    if payload is None:
        payload = {}

    sender = (
        payload.get("From")
        or payload.get("from")
        or payload.get("sender")
        or payload.get("phone")
        or ""
    )

    body = payload.get("Body")
    if body is None:
        body = payload.get("body")
    if body is None:
        msg = payload.get("message")
        if isinstance(msg, dict):
            body = msg.get("text") or msg.get("body")
        else:
            body = msg
    if body is None:
        body = payload.get("text")

    return {"from": str(sender or ""), "body": "" if body is None else str(body)}
