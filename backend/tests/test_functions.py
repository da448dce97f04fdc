from types import SimpleNamespace

import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from conftest import run
from app.functions import booking_email, deps
from app.functions.main import app as functions_app
from app.services import email_service, openai_advice
from app.services.openai_advice import AdviceQuotaExceeded, AdviceRateLimited, generate_guidance

BOOKING_EMAIL = {
    "therapistName": "Dr. Sarah Johnson",
    "bookingDate": "2026-01-05T15:00:00Z",
    "jitsiRoomCode": "mindcare-1767625200000",
    "userName": "Alex Kim",
    "userEmail": "alex@mindcare-users.com",
}


@pytest.fixture
def fn_client():
    return TestClient(functions_app)


@pytest.fixture
def outbox(monkeypatch):
    """Captures Resend sends; addresses listed in state['fail_for'] raise."""
    state = {"sent": [], "fail_for": set()}

    async def fake_send_email(to, subject, html):
        state["sent"].append({"to": to, "subject": subject, "html": html})
        if to in state["fail_for"]:
            raise Exception("Failed to send email: domain not verified")
        return {"id": "email_123"}

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    monkeypatch.setattr(booking_email, "OPERATOR_NOTIFICATION_EMAILS", ["ops1@mindcare.example", "ops2@mindcare.example"])
    return state


def test_format_booking_date():
    assert email_service.format_booking_date("2026-01-05T15:00:00Z") == "Monday, January 5, 2026 at 3:00 PM"
    assert email_service.format_booking_date("2026-01-05T09:05:00+00:00") == "Monday, January 5, 2026 at 9:05 AM"
    assert email_service.format_booking_date("2026-01-05T00:30:00") == "Monday, January 5, 2026 at 12:30 AM"
    # shown in UTC whatever offset the payload carries
    assert email_service.format_booking_date("2026-01-05T20:30:00+05:30") == "Monday, January 5, 2026 at 3:00 PM"
    assert email_service.format_booking_date("2026-01-05T22:00:00-05:00") == "Tuesday, January 6, 2026 at 3:00 AM"


@pytest.mark.parametrize("path", ["/send-booking-email", "/symptom-checker"])
def test_preflight_answers_with_cors_headers(fn_client, path):
    resp = fn_client.options(path)
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "apikey" in resp.headers["access-control-allow-headers"]


def test_browser_preflight_from_any_origin(fn_client):
    resp = fn_client.options(
        "/send-booking-email",
        headers={
            "Origin": "https://app.mindcare.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type, apikey",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"


def test_booking_email_sends_to_operators_and_user(fn_client, outbox):
    resp = fn_client.post("/send-booking-email", json=BOOKING_EMAIL)
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert resp.headers["access-control-allow-origin"] == "*"

    by_recipient = {s["to"]: s for s in outbox["sent"]}
    assert set(by_recipient) == {"ops1@mindcare.example", "ops2@mindcare.example", "alex@mindcare-users.com"}
    assert by_recipient["ops1@mindcare.example"]["subject"] == "New Therapy Booking - Alex Kim"

    user_mail = by_recipient["alex@mindcare-users.com"]
    assert user_mail["subject"] == "Your Therapy Session is Confirmed"
    assert "https://meet.jit.si/mindcare-1767625200000" in user_mail["html"]
    assert "Monday, January 5, 2026 at 3:00 PM" in user_mail["html"]


def test_booking_email_escapes_user_input(fn_client, outbox):
    resp = fn_client.post("/send-booking-email", json={**BOOKING_EMAIL, "userName": "<script>x</script>"})
    assert resp.status_code == 200
    ops_mail = next(s for s in outbox["sent"] if s["to"] == "ops1@mindcare.example")
    assert "<script>" not in ops_mail["html"]
    assert "&lt;script&gt;" in ops_mail["html"]


def test_any_failed_send_fails_the_call(fn_client, outbox):
    outbox["fail_for"].add("ops2@mindcare.example")
    resp = fn_client.post("/send-booking-email", json=BOOKING_EMAIL)
    assert resp.status_code == 500
    assert "domain not verified" in resp.json()["error"]
    # 나머지 발송도 모두 시도됨
    assert len(outbox["sent"]) == 3


def test_booking_email_rejects_incomplete_body(fn_client, outbox):
    resp = fn_client.post("/send-booking-email", json={"therapistName": "Dr. Sarah Johnson"})
    assert resp.status_code == 500
    assert "error" in resp.json()
    assert outbox["sent"] == []


def test_functions_api_key(fn_client, outbox, monkeypatch):
    monkeypatch.setattr(deps, "FUNCTIONS_API_KEY", "fn-secret")

    assert fn_client.post("/send-booking-email", json=BOOKING_EMAIL).status_code == 401
    assert fn_client.post("/send-booking-email", json=BOOKING_EMAIL, headers={"apikey": "wrong"}).status_code == 401
    ok = fn_client.post("/send-booking-email", json=BOOKING_EMAIL, headers={"Authorization": "Bearer fn-secret"})
    assert ok.status_code == 200
    assert fn_client.post("/symptom-checker", json={"symptoms": "x"}).status_code == 401


@pytest.fixture
def advice(monkeypatch):
    state = {"error": None}

    async def fake_generate(symptoms):
        if state["error"] is not None:
            raise state["error"]
        return f"guidance for: {symptoms}"

    monkeypatch.setattr(openai_advice, "generate_guidance", fake_generate)
    return state


def test_symptom_checker_returns_guidance(fn_client, advice):
    resp = fn_client.post("/symptom-checker", json={"symptoms": " racing thoughts "})
    assert resp.status_code == 200
    assert resp.json() == {"response": "guidance for: racing thoughts"}


def test_symptom_checker_requires_symptoms(fn_client, advice):
    assert fn_client.post("/symptom-checker", json={}).status_code == 400
    assert fn_client.post("/symptom-checker", json={"symptoms": "  "}).status_code == 400


@pytest.mark.parametrize(
    "error, status_code",
    [
        (AdviceRateLimited("429"), 429),
        (AdviceQuotaExceeded("402"), 402),
        (RuntimeError("OpenAI error: boom"), 500),
    ],
)
def test_symptom_checker_error_statuses(fn_client, advice, error, status_code):
    advice["error"] = error
    resp = fn_client.post("/symptom-checker", json={"symptoms": "headache"})
    assert resp.status_code == status_code
    assert resp.json()["error"]


# --- OpenAI error mapping ---

def _openai_error(cls, status_code, body=None):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return cls("boom", response=httpx.Response(status_code, request=request), body=body)


def _fake_openai(monkeypatch, outcome):
    def create(**kwargs):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    fake = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    monkeypatch.setattr(openai_advice, "get_client", lambda: fake)


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_openai_guidance_is_stripped(monkeypatch):
    _fake_openai(monkeypatch, _completion("  Breathe slowly.  "))
    assert run(generate_guidance("stress")) == "Breathe slowly."


def test_openai_rate_limit(monkeypatch):
    _fake_openai(monkeypatch, _openai_error(openai.RateLimitError, 429, {"code": "rate_limit_exceeded"}))
    with pytest.raises(AdviceRateLimited):
        run(generate_guidance("stress"))


def test_openai_insufficient_quota(monkeypatch):
    _fake_openai(monkeypatch, _openai_error(openai.RateLimitError, 429, {"code": "insufficient_quota"}))
    with pytest.raises(AdviceQuotaExceeded):
        run(generate_guidance("stress"))


def test_openai_payment_required(monkeypatch):
    _fake_openai(monkeypatch, _openai_error(openai.APIStatusError, 402))
    with pytest.raises(AdviceQuotaExceeded):
        run(generate_guidance("stress"))


def test_openai_other_errors(monkeypatch):
    _fake_openai(monkeypatch, _openai_error(openai.InternalServerError, 500))
    with pytest.raises(RuntimeError):
        run(generate_guidance("stress"))

    _fake_openai(monkeypatch, _completion(""))
    with pytest.raises(RuntimeError):
        run(generate_guidance("stress"))
