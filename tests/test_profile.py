from datetime import time
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from salon import db
from salon.models.appointment import Appointment, STATUS_CANCELLED, STATUS_CONFIRMED, CONTEST_REJECTED

from conftest import make_appointment, next_monday


def contested_appointment(app, user_id, service_id):
    with app.app_context():
        appointment_id = make_appointment(user_id, service_id, next_monday(), time(10, 0))
        appointment = db.session.get(Appointment, appointment_id)
        appointment.contest('Hair is longer than in the photo', 'long', Decimal('80.00'))
        db.session.commit()
        return appointment_id


def broken_commit():
    raise OperationalError('COMMIT', {}, Exception('database is locked'))


def test_client_accepts_contest(client, app, user_id, service_id, login):
    appointment_id = contested_appointment(app, user_id, service_id)
    login()
    response = client.post(f'/profile/appointments/{appointment_id}/contest/accept', follow_redirects=True)
    assert 'You accepted the new price' in response.get_data(as_text=True)

    with app.app_context():
        appointment = db.session.get(Appointment, appointment_id)
        assert appointment.status == STATUS_CONFIRMED
        assert appointment.final_price == Decimal('80.00')


def test_contest_cannot_be_accepted_after_the_salon_cancels(client, app, user_id, service_id, login):
    appointment_id = contested_appointment(app, user_id, service_id)
    with app.app_context():
        db.session.get(Appointment, appointment_id).cancel()
        db.session.commit()

    login()
    html = client.get('/profile/').get_data(as_text=True)
    assert f'/profile/appointments/{appointment_id}/contest/accept' not in html

    client.post(f'/profile/appointments/{appointment_id}/contest/accept')
    with app.app_context():
        appointment = db.session.get(Appointment, appointment_id)
        assert appointment.status == STATUS_CANCELLED
        assert appointment.contest_status == CONTEST_REJECTED
        assert appointment.final_price == Decimal('50.00')


def test_failed_cancel_is_rolled_back(client, app, user_id, service_id, login, monkeypatch):
    with app.app_context():
        appointment_id = make_appointment(user_id, service_id, next_monday(), time(10, 0))
    login()

    monkeypatch.setattr(db.session, 'commit', broken_commit)
    response = client.post(f'/profile/appointments/{appointment_id}/cancel', follow_redirects=True)
    monkeypatch.undo()

    assert 'We could not save your change' in response.get_data(as_text=True)
    with app.app_context():
        assert db.session.get(Appointment, appointment_id).status != STATUS_CANCELLED
