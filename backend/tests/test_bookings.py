import re
from datetime import datetime, timedelta, timezone

from conftest import all_rows, register_and_login
from app.models import Booking, BookingNotification
from app.services import notification_client
from app.services.notification_client import NotificationError

SLOT = "2030-01-15T10:30:00Z"
OTHER_SLOT = "2030-02-01T16:00:00Z"


def instant(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def book(client, headers, therapist_id, when=SLOT):
    resp = client.post("/bookings", json={"therapist_id": therapist_id, "booking_date": when}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["booking"]


def test_booking_requires_therapist_and_date(client, auth_headers, therapist, sent_notifications):
    for body in ({"booking_date": SLOT}, {"therapist_id": therapist.id}, {}):
        resp = client.post("/bookings", json=body, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Please select a therapist and a date"

    assert all_rows(Booking) == []
    assert all_rows(BookingNotification) == []
    assert sent_notifications == []


def test_booking_unknown_therapist(client, auth_headers, sent_notifications):
    resp = client.post("/bookings", json={"therapist_id": 999, "booking_date": SLOT}, headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Therapist not found"
    assert all_rows(Booking) == []


def test_create_booking(client, auth_headers, therapist, sent_notifications):
    resp = client.post("/bookings", json={"therapist_id": therapist.id, "booking_date": SLOT}, headers=auth_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Session booked!"

    booking = body["booking"]
    assert booking["status"] == "scheduled"
    assert booking["version"] == 1
    assert booking["therapist_name"] == "Dr. Sarah Johnson"
    assert booking["booking_date"].startswith("2030-01-15T10:30:00")
    assert re.fullmatch(r"mindcare-\d+", booking["jitsi_room_code"])
    assert booking["meeting_url"] == f"https://meet.jit.si/{booking['jitsi_room_code']}"

    # 확인 메일은 예약과 같은 room code로 발송
    assert len(sent_notifications) == 1
    payload = sent_notifications[0]
    assert payload["jitsiRoomCode"] == booking["jitsi_room_code"]
    assert payload["therapistName"] == "Dr. Sarah Johnson"
    assert payload["userName"] == "Alex Kim"
    assert payload["userEmail"] == "alex@mindcare-users.com"
    assert payload["bookingDate"].startswith("2030-01-15T10:30:00")

    (row,) = all_rows(BookingNotification)
    assert row.booking_id == booking["id"]
    assert row.status == "SENT"
    assert row.attempts == 1


def test_room_codes_are_unique(client, auth_headers, therapist, sent_notifications):
    # 같은 치료사, 같은 시간 중복 예약도 허용
    first = book(client, auth_headers, therapist.id)
    second = book(client, auth_headers, therapist.id)
    assert first["jitsi_room_code"] != second["jitsi_room_code"]


def test_notification_failure_keeps_booking(client, auth_headers, therapist, monkeypatch):
    async def failing_send(payload, **kwargs):
        raise NotificationError("resend down")

    monkeypatch.setattr(notification_client, "send_booking_email", failing_send)

    resp = client.post("/bookings", json={"therapist_id": therapist.id, "booking_date": SLOT}, headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["message"] == "Session booked!"

    assert len(all_rows(Booking)) == 1
    (row,) = all_rows(BookingNotification)
    assert row.status == "PENDING"
    assert row.attempts == 1
    assert row.last_error == "resend down"


def test_list_bookings_newest_date_first(client, auth_headers, therapist, sent_notifications):
    early = book(client, auth_headers, therapist.id, SLOT)
    late = book(client, auth_headers, therapist.id, OTHER_SLOT)

    resp = client.get("/bookings", headers=auth_headers)
    assert resp.status_code == 200
    ids = [b["id"] for b in resp.json()]
    assert ids == [late["id"], early["id"]]
    assert all(b["therapist_name"] == "Dr. Sarah Johnson" for b in resp.json())


def test_reschedule_changes_only_the_date(client, auth_headers, therapist, sent_notifications):
    booking = book(client, auth_headers, therapist.id)

    resp = client.patch(f"/bookings/{booking['id']}", json={"booking_date": OTHER_SLOT}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Booking updated successfully"

    updated = resp.json()["booking"]
    assert updated["booking_date"].startswith("2030-02-01T16:00:00")
    assert updated["therapist_id"] == booking["therapist_id"]
    assert updated["jitsi_room_code"] == booking["jitsi_room_code"]
    assert updated["status"] == "scheduled"
    assert updated["version"] == 2
    # 일정 변경은 메일 재발송 없음
    assert len(sent_notifications) == 1


def test_reschedule_requires_date(client, auth_headers, therapist, sent_notifications):
    booking = book(client, auth_headers, therapist.id)
    resp = client.patch(f"/bookings/{booking['id']}", json={}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please select a date"

    (row,) = all_rows(Booking)
    assert row.version == 1


def test_last_edit_wins(client, auth_headers, therapist, sent_notifications):
    booking = book(client, auth_headers, therapist.id)
    url = f"/bookings/{booking['id']}"

    assert client.patch(url, json={"booking_date": "2030-03-01T09:00:00Z"}, headers=auth_headers).status_code == 200
    assert client.patch(url, json={"booking_date": "2030-03-02T09:00:00Z"}, headers=auth_headers).status_code == 200

    (listed,) = client.get("/bookings", headers=auth_headers).json()
    assert listed["booking_date"].startswith("2030-03-02T09:00:00")
    assert listed["version"] == 3


def test_stale_version_is_rejected(client, auth_headers, therapist, sent_notifications):
    booking = book(client, auth_headers, therapist.id)
    url = f"/bookings/{booking['id']}"

    ok = client.patch(url, json={"booking_date": "2030-03-01T09:00:00Z", "expected_version": 1}, headers=auth_headers)
    assert ok.status_code == 200

    stale = client.patch(url, json={"booking_date": "2030-04-01T09:00:00Z", "expected_version": 1}, headers=auth_headers)
    assert stale.status_code == 409

    (listed,) = client.get("/bookings", headers=auth_headers).json()
    assert listed["booking_date"].startswith("2030-03-01T09:00:00")


def test_cancel_hides_booking_but_keeps_row(client, auth_headers, therapist, sent_notifications):
    booking = book(client, auth_headers, therapist.id)

    resp = client.delete(f"/bookings/{booking['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Booking cancelled successfully"
    assert resp.json()["booking"]["status"] == "cancelled"

    assert client.get("/bookings", headers=auth_headers).json() == []

    history = client.get("/bookings", params={"include_cancelled": True}, headers=auth_headers).json()
    assert [b["status"] for b in history] == ["cancelled"]

    (row,) = all_rows(Booking)
    assert row.status == "cancelled"
    assert row.cancelled_at is not None

    # 이미 취소된 예약은 다시 취소/변경 불가
    assert client.delete(f"/bookings/{booking['id']}", headers=auth_headers).status_code == 409
    resp = client.patch(f"/bookings/{booking['id']}", json={"booking_date": OTHER_SLOT}, headers=auth_headers)
    assert resp.status_code == 409


def test_complete_booking(client, auth_headers, therapist, sent_notifications):
    booking = book(client, auth_headers, therapist.id)

    resp = client.post(f"/bookings/{booking['id']}/complete", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Session marked as completed"
    assert resp.json()["booking"]["status"] == "completed"

    (row,) = all_rows(Booking)
    assert row.completed_at is not None

    assert client.delete(f"/bookings/{booking['id']}", headers=auth_headers).status_code == 409


def test_other_users_bookings_are_invisible(client, auth_headers, therapist, sent_notifications):
    booking = book(client, auth_headers, therapist.id)
    other = register_and_login(client, email="jamie@mindcare-users.com", name="Jamie")

    assert client.get("/bookings", headers=other).json() == []
    url = f"/bookings/{booking['id']}"
    assert client.patch(url, json={"booking_date": OTHER_SLOT}, headers=other).status_code == 404
    assert client.delete(url, headers=other).status_code == 404
    assert client.post(f"{url}/complete", headers=other).status_code == 404

    (row,) = all_rows(Booking)
    assert row.status == "scheduled"


def test_bookings_require_login(client):
    assert client.get("/bookings").status_code == 401


def test_booking_dates_are_absolute_instants(client, auth_headers, therapist, sent_notifications):
    # 10:30 in UTC+05:30 is 05:00Z, earlier than 06:00Z
    ist = book(client, auth_headers, therapist.id, "2030-01-15T10:30:00+05:30")
    utc = book(client, auth_headers, therapist.id, "2030-01-15T06:00:00Z")

    assert instant(ist["booking_date"]) == datetime(2030, 1, 15, 5, 0, tzinfo=timezone.utc)
    assert sent_notifications[0]["bookingDate"] == "2030-01-15T05:00:00+00:00"

    listed = client.get("/bookings", headers=auth_headers).json()
    assert [b["id"] for b in listed] == [utc["id"], ist["id"]]
    returned = instant(listed[1]["booking_date"])
    assert returned == datetime(2030, 1, 15, 5, 0, tzinfo=timezone.utc)
    assert returned.utcoffset() == timedelta(0)

    resp = client.patch(f"/bookings/{ist['id']}", json={"booking_date": "2030-03-01T09:00:00-05:00"}, headers=auth_headers)
    assert resp.status_code == 200
    assert instant(resp.json()["booking"]["booking_date"]) == datetime(2030, 3, 1, 14, 0, tzinfo=timezone.utc)
