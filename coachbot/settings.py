import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE_NAME: str = os.getenv("RQ_QUEUE_NAME", "coachbot")

    # Twilio WhatsApp transport
    TWILIO_ACCOUNT_SID: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    TWILIO_PHONE_NUMBER: str = os.getenv("TWILIO_PHONE_NUMBER", "")
    # Scheme re-added to canonical addresses before handing them to the transport
    CHANNEL_SCHEME: str = os.getenv("CHANNEL_SCHEME", "whatsapp")

    # Onboarding: pause between the welcome message and the round 1 questions
    ONBOARDING_ROUND_1_DELAY_SEC: int = int(os.getenv("ONBOARDING_ROUND_1_DELAY_SEC", "3"))

    # Weekly check-in escalation
    REMINDER_QUIET_PERIOD_SEC: int = int(os.getenv("REMINDER_QUIET_PERIOD_SEC", str(3 * 60 * 60)))
    REMINDER_CAP: int = int(os.getenv("REMINDER_CAP", "2"))

    # Wall-clock schedule (all times local to SCHEDULE_TIMEZONE)
    SCHEDULE_ENABLED: bool = os.getenv("SCHEDULE_ENABLED", "true").lower() == "true"
    SCHEDULE_TIMEZONE: str = os.getenv("SCHEDULE_TIMEZONE", "America/New_York")
    INITIATE_WEEKDAY: int = int(os.getenv("INITIATE_WEEKDAY", "4"))  # Monday=0 ... Friday=4
    INITIATE_HOUR: int = int(os.getenv("INITIATE_HOUR", "9"))
    REMIND_WEEKDAYS: str = os.getenv("REMIND_WEEKDAYS", "4,5")  # Friday, Saturday
    REMIND_EVERY_HOURS: int = int(os.getenv("REMIND_EVERY_HOURS", "3"))
    ESCALATE_WEEKDAY: int = int(os.getenv("ESCALATE_WEEKDAY", "5"))
    ESCALATE_HOUR: int = int(os.getenv("ESCALATE_HOUR", "10"))

    # Concurrency
    RECORD_LOCK_TTL_MS: int = int(os.getenv("RECORD_LOCK_TTL_MS", "10000"))
    RECORD_LOCK_RETRIES: int = int(os.getenv("RECORD_LOCK_RETRIES", "20"))
    SWEEP_LOCK_TTL_MS: int = int(os.getenv("SWEEP_LOCK_TTL_MS", str(30 * 60 * 1000)))

    # Inbound webhook: optional shared secret (x-webhook-secret header)
    WEBHOOK_SECRET: str = os.getenv("WEBHOOK_SECRET", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")

    # Security & Privacy
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

settings = Settings()
