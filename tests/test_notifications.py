from datetime import datetime, timedelta

from tattoo_crm.domain.notifications.service import NotificationService, is_reminder_due, reminder_dedup_key
from tattoo_crm.models import Notification
from tattoo_crm.models_booking import Appointment

NOW = datetime(2030, 1, 14, 9, 0)


def add_appointment(db, seed, start_at, status="CONFIRMED"):
    appointment = Appointment(
        user_id=seed.customer_id,
        branch_id=seed.branch_id,
        artist_id=seed.artist_id,
        start_at=start_at,
        end_at=start_at + timedelta(hours=1),
        status=status,
    )
    db.add(appointment)
    db.commit()
    return appointment.id


def test_reminder_window_bounds():
    lead = NOW + timedelta(hours=24)
    assert is_reminder_due(lead, NOW)
    assert is_reminder_due(lead + timedelta(minutes=4, seconds=59), NOW)
    assert not is_reminder_due(lead + timedelta(minutes=5), NOW)
    assert not is_reminder_due(lead - timedelta(seconds=1), NOW)


def test_reminder_sent_once_per_appointment(client, seed, db):
    appointment_id = add_appointment(db, seed, NOW + timedelta(hours=24, minutes=2))

    assert NotificationService(db).send_due_reminders(now=NOW) == 1
    assert NotificationService(db).send_due_reminders(now=NOW + timedelta(minutes=1)) == 0

    notifications = db.query(Notification).filter(Notification.user_id == seed.artist_id).all()
    assert len(notifications) == 1
    assert notifications[0].type == "APPOINTMENT"
    assert notifications[0].data == {
        "appointmentId": appointment_id,
        "dedupKey": reminder_dedup_key(appointment_id),
    }

    response = client.get("/notifications", headers=seed.artist_headers)
    assert response.status_code == 200
    assert [n["data"]["dedupKey"] for n in response.json()] == [f"appt-reminder-24h:{appointment_id}"]
    assert client.get("/notifications/unread-count", headers=seed.artist_headers).json() == {"count": 1}


def test_reminder_skips_appointments_outside_window(db, seed):
    add_appointment(db, seed, NOW + timedelta(hours=25))
    assert NotificationService(db).send_due_reminders(now=NOW) == 0


def test_reminder_ignores_pending_appointments(db, seed):
    add_appointment(db, seed, NOW + timedelta(hours=24, minutes=1), status="PENDING")
    assert NotificationService(db).send_due_reminders(now=NOW) == 0


def test_reminder_looks_at_next_appointment_only(db, seed):
    add_appointment(db, seed, NOW + timedelta(hours=3))
    add_appointment(db, seed, NOW + timedelta(hours=24, minutes=1))
    assert NotificationService(db).send_due_reminders(now=NOW) == 0


def test_mark_all_read(client, seed, db):
    service = NotificationService(db)
    service.create_for_user(seed.artist_id, "One", "first")
    service.create_for_user(seed.artist_id, "Two", "second")

    response = client.post("/notifications/read-all", headers=seed.artist_headers)
    assert response.status_code == 200
    assert client.get("/notifications/unread-count", headers=seed.artist_headers).json() == {"count": 0}
