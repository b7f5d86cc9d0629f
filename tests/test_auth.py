from sqlalchemy.exc import OperationalError

from salon import db
from salon.models.audit import AuditLog
from salon.models.user import User

from conftest import PASSWORD


def test_register_logs_the_new_customer_in(client, app):
    response = client.post('/auth/register', data={
        'name': 'Maria Silva',
        'email': 'Maria@Example.com',
        'password': 'longenough',
        'confirm_password': 'longenough',
    })
    assert response.status_code == 302

    with app.app_context():
        user = User.query.one()
        assert user.email == 'maria@example.com'
        assert not user.is_admin
        assert AuditLog.query.filter_by(action='create', entity_type='user').count() == 1

    assert client.get('/profile/').status_code == 200


def test_register_rejects_duplicate_email(client, app, user_id):
    html = client.post('/auth/register', data={
        'name': 'Someone',
        'email': 'client@example.com',
        'password': 'longenough',
        'confirm_password': 'longenough',
    }).get_data(as_text=True)
    assert 'Email already registered' in html
    with app.app_context():
        assert User.query.count() == 1


def test_login_redirects_by_role(client, app, user_id, admin_id, login):
    response = login()
    assert response.headers['Location'].endswith('/profile/')
    client.get('/auth/logout')

    response = login('owner@example.com')
    assert response.headers['Location'].endswith('/admin/dashboard')


def test_failed_login_is_audited(client, app, user_id, login):
    html = login(password='wrong-password').get_data(as_text=True)
    assert 'Invalid email or password.' in html

    with app.app_context():
        entry = AuditLog.query.filter_by(entity_type='login').one()
        assert entry.success is False
        assert entry.get_details_dict()['reason'] == 'invalid_credentials'


def test_login_ignores_offsite_next(client, user_id):
    response = client.post('/auth/login?next=//evil.example.com/',
                           data={'email': 'client@example.com', 'password': PASSWORD})
    assert response.headers['Location'].endswith('/profile/')


def test_change_password_requires_current_password(client, app, user_id, login):
    login()
    html = client.post('/auth/change-password', data={
        'current_password': 'not-it',
        'password': 'brand-new-pass',
        'confirm_password': 'brand-new-pass',
    }).get_data(as_text=True)
    assert 'Current password is incorrect.' in html

    response = client.post('/auth/change-password', data={
        'current_password': PASSWORD,
        'password': 'brand-new-pass',
        'confirm_password': 'brand-new-pass',
    })
    assert response.status_code == 302
    with app.app_context():
        assert db.session.get(User, user_id).check_password('brand-new-pass')


def test_change_password_survives_a_failed_commit(client, app, user_id, login, monkeypatch):
    login()

    def broken_commit():
        raise OperationalError('COMMIT', {}, Exception('database is locked'))
    monkeypatch.setattr(db.session, 'commit', broken_commit)
    html = client.post('/auth/change-password', data={
        'current_password': PASSWORD,
        'password': 'brand-new-pass',
        'confirm_password': 'brand-new-pass',
    }).get_data(as_text=True)
    monkeypatch.undo()

    assert 'We could not update your password' in html
    with app.app_context():
        assert db.session.get(User, user_id).check_password(PASSWORD)
