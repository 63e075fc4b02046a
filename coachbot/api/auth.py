from fastapi import Header, HTTPException
from coachbot.settings import settings


def require_webhook_secret(x_webhook_secret: str = Header(default="", alias="x-webhook-secret")):
    """
    Shared secret is OPTIONAL.
    - If WEBHOOK_SECRET env is empty: allow all requests.
    - If WEBHOOK_SECRET env is set: require matching x-webhook-secret header.
    """
    if not getattr(settings, "WEBHOOK_SECRET", ""):
        return
    if x_webhook_secret != settings.WEBHOOK_SECRET:
        raise HTTPException(status_code=401, detail="Invalid webhook secret")


def require_admin(x_admin_key: str = Header(default="", alias="x-admin-key")):
    if not settings.ADMIN_RBAC_ENABLED:
        return
    # Secure default: if enabled but no key configured, reject all.
    if not settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Admin access disabled (no key configured)")
    if x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid admin key")
