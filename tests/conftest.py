import pytest
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from salon import create_app, db
from salon.models.user import User, AdminGrant
from salon.models.service import Service
from salon.models.availability import BusinessHours
from salon.models.appointment import Appointment

PASSWORD = 'password123'


class RecordingGateway(object):
    """Stands in for Firebase; remembers what was sent and fails on request"""

    def __init__(self):
        self.sent = []
        self.failures = {}

    def send(self, token, message):
        if token in self.failures:
            raise self.failures[token]
        self.sent.append((token, message))
        return f'projects/test/messages/{len(self.sent)}'


def next_monday():
    today = date.today()
    return today + timedelta(days=7 - today.weekday())


def make_user(email='client@example.com', name='Client', admin=False):
    user = User(email=email, name=name, password=PASSWORD)
    db.session.add(user)
    db.session.commit()
    if admin:
        db.session.add(AdminGrant(user_id=user.id, granted_by='tests'))
        db.session.commit()
    return user.id


def make_service(name='Haircut', price='50.00', duration=30, **columns):
    service = Service(name=name, price=Decimal(price), duration_minutes=duration,
                      description='A careful cut and finish')
    for key, value in columns.items():
        setattr(service, key, value)
    db.session.add(service)
    db.session.commit()
    return service.id


def make_appointment(client_id, service_id, day, at, minutes=30, status=None):
    start = datetime.combine(day, at)
    appointment = Appointment(
        client_id=client_id,
        service_id=service_id,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        client_name='Client',
        client_email='client@example.com',
        final_price=Decimal('50.00')
    )
    if status:
        appointment.status = status
    db.session.add(appointment)
    db.session.commit()
    return appointment.id


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def app(tmp_path, gateway):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'WTF_CSRF_ENABLED': False,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'PUSH_GATEWAY': gateway,
        'SITE_URL': 'https://salon.example.com',
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user_id(app):
    with app.app_context():
        return make_user()


@pytest.fixture
def admin_id(app):
    with app.app_context():
        return make_user(email='owner@example.com', name='Owner', admin=True)


@pytest.fixture
def hours(app):
    """Salon open 09:00-18:00, Monday to Friday"""
    with app.app_context():
        db.session.add(BusinessHours(start_time=time(9, 0), end_time=time(18, 0)))
        db.session.commit()


@pytest.fixture
def service_id(app, hours):
    with app.app_context():
        return make_service()


@pytest.fixture
def login(client):
    def do_login(email='client@example.com', password=PASSWORD):
        return client.post('/auth/login', data={'email': email, 'password': password})
    return do_login
