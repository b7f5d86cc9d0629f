from datetime import time

from salon import db
from salon.models.appointment import Appointment, ChatMessage, SENDER_CLIENT, SENDER_ADMIN
from salon.models.audit import AuditLog

from conftest import make_user, make_appointment, next_monday, PASSWORD


def sign_in(app, email):
    client = app.test_client()
    client.post('/auth/login', data={'email': email, 'password': PASSWORD})
    return client


def test_client_and_admin_share_a_conversation(app, user_id, admin_id, service_id):
    with app.app_context():
        appointment_id = make_appointment(user_id, service_id, next_monday(), time(10, 0))
    url = f'/appointments/{appointment_id}/chat'

    customer = sign_in(app, 'client@example.com')
    owner = sign_in(app, 'owner@example.com')

    customer.post(url, data={'text': 'Can I bring a reference photo?'})
    with app.app_context():
        appointment = db.session.get(Appointment, appointment_id)
        assert appointment.unread_count(SENDER_ADMIN) == 1
        assert appointment.unread_count(SENDER_CLIENT) == 0

    html = owner.get(url).get_data(as_text=True)
    assert 'Can I bring a reference photo?' in html
    owner.post(url, data={'text': 'Of course!'})

    with app.app_context():
        appointment = db.session.get(Appointment, appointment_id)
        assert appointment.unread_count(SENDER_ADMIN) == 0
        assert appointment.unread_count(SENDER_CLIENT) == 1
        roles = [m.sender_role for m in appointment.messages]
        assert roles == [SENDER_CLIENT, SENDER_ADMIN]

    customer.get(url)
    with app.app_context():
        assert ChatMessage.query.filter_by(is_read=False).count() == 0


def test_strangers_cannot_read_the_conversation(app, user_id, service_id):
    with app.app_context():
        appointment_id = make_appointment(user_id, service_id, next_monday(), time(10, 0))
        make_user('stranger@example.com', 'Stranger')

    stranger = sign_in(app, 'stranger@example.com')
    response = stranger.get(f'/appointments/{appointment_id}/chat')
    assert response.status_code == 302

    with app.app_context():
        entry = AuditLog.query.filter_by(action='permission_denied').one()
        assert entry.get_details_dict()['path'] == f'appointments/{appointment_id}/messages'
