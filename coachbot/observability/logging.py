import json
import time
from coachbot.settings import settings

# Free text the subject typed, or that we typed to them
SENSITIVE_KEYS = {"text", "body", "message", "reply"}
# Phone numbers: keep the last four digits so log lines can still be correlated
ADDRESS_KEYS = {"address", "sender"}
ANSWERS_KEY = "answers"


def _redact_value(v):
    if isinstance(v, str) and len(v) > 0:
        return f"[REDACTED:{len(v)}chars]"
    if isinstance(v, dict):
        return {k: _redact_value(val) for k, val in v.items()}
    if isinstance(v, list):
        return [_redact_value(val) for val in v]
    return v


def _mask_address(v):
    if not isinstance(v, str) or not v:
        return v
    return f"***{v[-4:]}" if len(v) > 4 else "***"


def _redact_answers(v):
    """{"round1": {...}, "round2": {...}} -> {"round1": "[REDACTED:5 fields]", ...}"""
    if not isinstance(v, dict):
        return _redact_value(v)
    out = {}
    for round_key, fields in v.items():
        if isinstance(fields, dict):
            out[round_key] = f"[REDACTED:{len(fields)} fields]"
        else:
            out[round_key] = _redact_value(fields)
    return out


def _redact_field(k, v):
    if k == ANSWERS_KEY:
        return _redact_answers(v)
    if k in SENSITIVE_KEYS:
        return _redact_value(v)
    if k in ADDRESS_KEYS:
        return _mask_address(v)
    if isinstance(v, dict):
        return {sk: _redact_field(sk, sv) for sk, sv in v.items()}
    return v


def log(event: str, **fields):
    payload = {"ts": int(time.time()), "event": event}

    if settings.ENABLE_PII_REDACTION:
        payload.update({k: _redact_field(k, v) for k, v in fields.items()})
    else:
        payload.update(fields)

    print(json.dumps(payload, ensure_ascii=False, default=str))
