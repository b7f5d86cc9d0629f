import pytest

from salon import db
from salon.models.user import User, DeviceToken
from salon.notifications.tokens import (TokenManager, PermissionRequired, PermissionDenied, TokenUnavailable,
                                        PERMISSION_GRANTED, PERMISSION_DEFAULT, PERMISSION_DENIED)


def test_subscribing_twice_keeps_one_token(app, user_id):
    with app.app_context():
        user = db.session.get(User, user_id)
        manager = TokenManager()
        manager.subscribe(user, PERMISSION_GRANTED, lambda: 'device-a')
        manager.subscribe(user, PERMISSION_GRANTED, lambda: 'device-a')

        assert DeviceToken.query.filter_by(user_id=user_id).count() == 1
        assert manager.is_subscribed(user, 'device-a')


def test_each_device_adds_its_own_token(app, user_id):
    with app.app_context():
        user = db.session.get(User, user_id)
        manager = TokenManager()
        manager.subscribe(user, PERMISSION_GRANTED, lambda: 'device-a')
        manager.subscribe(user, PERMISSION_GRANTED, lambda: 'device-b')
        assert manager.tokens_for(user) == ['device-a', 'device-b']


def test_unsubscribe_removes_only_that_device(app, user_id):
    with app.app_context():
        user = db.session.get(User, user_id)
        manager = TokenManager()
        manager.add_token(user, 'device-a')
        manager.add_token(user, 'device-b')

        assert manager.unsubscribe(user, 'device-a') == 1
        assert not manager.is_subscribed(user, 'device-a')
        assert manager.is_subscribed(user)


def test_undecided_permission_is_asked_first(app, user_id):
    with app.app_context():
        user = db.session.get(User, user_id)
        manager = TokenManager()
        with pytest.raises(PermissionRequired):
            manager.subscribe(user, PERMISSION_DEFAULT, lambda: 'device-a')

        token = manager.subscribe(user, PERMISSION_DEFAULT, lambda: 'device-a',
                                  request_permission=lambda: PERMISSION_GRANTED)
        assert token == 'device-a'


def test_blocked_permission_and_missing_token(app, user_id):
    with app.app_context():
        user = db.session.get(User, user_id)
        manager = TokenManager()
        with pytest.raises(PermissionDenied):
            manager.subscribe(user, PERMISSION_DENIED, lambda: 'device-a')
        with pytest.raises(PermissionDenied):
            manager.subscribe(user, PERMISSION_DEFAULT, lambda: 'device-a',
                              request_permission=lambda: PERMISSION_DENIED)
        with pytest.raises(TokenUnavailable):
            manager.subscribe(user, PERMISSION_GRANTED, lambda: None)
        assert not manager.is_subscribed(user)


def test_subscribe_endpoint(client, app, user_id, login):
    login()
    for _ in range(2):
        response = client.post('/profile/notifications/subscribe',
                               json={'permission': 'granted', 'token': 'browser-1'})
        assert response.status_code == 200
        assert response.get_json() == {'subscribed': True}

    with app.app_context():
        assert DeviceToken.query.filter_by(user_id=user_id).count() == 1

    response = client.post('/profile/notifications/unsubscribe', json={'token': 'browser-1'})
    assert response.get_json()['subscribed'] is False


def test_subscribe_endpoint_reports_permission_problems(client, user_id, login):
    login()
    url = '/profile/notifications/subscribe'
    assert client.post(url, json={'permission': 'default', 'token': 'x'}).status_code == 409
    assert client.post(url, json={'permission': 'denied', 'token': 'x'}).status_code == 403
    assert client.post(url, json={'permission': 'granted'}).status_code == 422


def test_subscribe_endpoint_rejects_malformed_bodies(client, app, user_id, login):
    login()
    url = '/profile/notifications/subscribe'
    for body in (['granted'], 'granted', {'permission': 'granted', 'token': ['a', 'b']},
                 {'permission': 'granted', 'token': {'value': 'a'}}, {'permission': ['granted'], 'token': 'x'},
                 {'permission': 'granted', 'token': 'x' * 513}):
        response = client.post(url, json=body)
        assert response.status_code == 400
        assert response.get_json()['subscribed'] is False

    assert client.post('/profile/notifications/unsubscribe', json=['browser-1']).status_code == 400
    with app.app_context():
        assert DeviceToken.query.filter_by(user_id=user_id).count() == 0
