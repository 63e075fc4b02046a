import re

from coachbot.settings import settings

# "whatsapp:", "sms:", "tel:" ... anything shaped like a URI scheme at the start
_SCHEME_RE = re.compile(r"^\s*[A-Za-z][A-Za-z0-9+.\-]*:")
_NON_DIGIT_RE = re.compile(r"\D")


def normalize_address(address: str) -> str:
    """
    Canonical key used for records in both flows.

    Strips a channel-scheme prefix, every non-digit, then a single leading "1"
    (North American country code):

        "whatsapp:+1 (555) 010-2030" -> "5550102030"
    """
    cleaned = _SCHEME_RE.sub("", address or "", count=1)
    cleaned = _NON_DIGIT_RE.sub("", cleaned)
    if cleaned.startswith("1"):
        cleaned = cleaned[1:]
    return cleaned


def format_address(address: str, scheme: str = None) -> str:
    """Transport form of an address: "<scheme>:+<canonical digits>"."""
    scheme = scheme if scheme is not None else settings.CHANNEL_SCHEME
    normalized = normalize_address(address)
    if not scheme:
        return f"+{normalized}"
    return f"{scheme}:+{normalized}"
