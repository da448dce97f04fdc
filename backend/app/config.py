# backend/app/config.py
import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

# backend/.env
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")


def _csv(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


ASYNC_DB_URL = os.getenv("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./mindcare.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# JWT
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

CORS_ORIGINS = _csv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173")

# OpenAI (used by the symptom-checker function only)
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_S = float(os.getenv("OPENAI_TIMEOUT_S", "15"))

# Serverless-style functions (app.functions.main)
FUNCTIONS_BASE_URL = os.getenv("FUNCTIONS_BASE_URL", "http://localhost:8001").rstrip("/")
ADVICE_PROXY_URL = os.getenv("ADVICE_PROXY_URL", f"{FUNCTIONS_BASE_URL}/symptom-checker")
NOTIFICATION_PROXY_URL = os.getenv("NOTIFICATION_PROXY_URL", f"{FUNCTIONS_BASE_URL}/send-booking-email")
FUNCTIONS_API_KEY = os.getenv("FUNCTIONS_API_KEY")
PROXY_TIMEOUT_S = float(os.getenv("PROXY_TIMEOUT_S", "30"))

# Resend
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "MindCare <onboarding@resend.dev>")
# Operations team copied on every new booking
OPERATOR_NOTIFICATION_EMAILS = _csv("OPERATOR_NOTIFICATION_EMAILS")

# Video sessions
JITSI_BASE_URL = os.getenv("JITSI_BASE_URL", "https://meet.jit.si").rstrip("/")
ROOM_CODE_PREFIX = os.getenv("ROOM_CODE_PREFIX", "mindcare-")

RECENT_MOODS_LIMIT = int(os.getenv("RECENT_MOODS_LIMIT", "7"))

# Kafka is optional; without a bootstrap server notifications are dispatched in-process
KAFKA_BOOTSTRAP = os.getenv("KAFKA_BOOTSTRAP", "")
KAFKA_TOPIC_BOOKING_NOTIFICATIONS = os.getenv("KAFKA_TOPIC_BOOKING_NOTIFICATIONS", "booking.notifications")
KAFKA_GROUP_NOTIFICATION_WORKERS = os.getenv("KAFKA_GROUP_NOTIFICATION_WORKERS", "notification-workers")

# Booking notification outbox
NOTIFY_MAX_ATTEMPTS = int(os.getenv("NOTIFY_MAX_ATTEMPTS", "5"))
NOTIFY_RETRY_BASE_S = float(os.getenv("NOTIFY_RETRY_BASE_S", "30"))
NOTIFY_SWEEP_INTERVAL_S = float(os.getenv("NOTIFY_SWEEP_INTERVAL_S", "30"))
# new rows wait this long for their direct hand-off before the sweep may take them
NOTIFY_FIRST_ATTEMPT_GRACE_S = float(os.getenv("NOTIFY_FIRST_ATTEMPT_GRACE_S", "10"))
# a claimed row is invisible to other dispatchers for this long (must exceed PROXY_TIMEOUT_S)
NOTIFY_CLAIM_LEASE_S = float(os.getenv("NOTIFY_CLAIM_LEASE_S", "120"))

ADVICE_SYSTEM_PROMPT = """
You are a compassionate mental wellness assistant.
Core rules:
- Be warm, validating and concise. Never diagnose or prescribe medication.
- Offer a few practical, gentle coping suggestions for what the user describes.
- Encourage reaching out to a licensed mental health professional, and to local
  emergency services immediately if the user mentions self-harm or danger.
- Do not promise outcomes.
"""
