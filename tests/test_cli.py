from datetime import time

from salon import db
from salon.models.availability import BusinessHours
from salon.models.site_config import ThemeSettings
from salon.models.user import User, AdminGrant


def test_grant_and_revoke_admin(app, user_id):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['grant-admin', 'CLIENT@example.com', '--by', 'owner'])
    assert result.exit_code == 0
    assert 'is now an admin' in result.output
    with app.app_context():
        grant = db.session.get(AdminGrant, user_id)
        assert grant.granted_by == 'owner'
        assert db.session.get(User, user_id).is_admin

    result = runner.invoke(args=['revoke-admin', 'client@example.com'])
    assert 'no longer an admin' in result.output
    with app.app_context():
        assert db.session.get(AdminGrant, user_id) is None


def test_grant_admin_unknown_user(app):
    result = app.test_cli_runner().invoke(args=['grant-admin', 'nobody@example.com'])
    assert result.exit_code != 0
    assert 'No user registered' in result.output


def test_seed_defaults(app):
    result = app.test_cli_runner().invoke(args=['seed-defaults'])
    assert result.exit_code == 0
    with app.app_context():
        hours = BusinessHours.get()
        assert (hours.start_time, hours.end_time) == (time(9, 0), time(18, 0))
        assert hours.working_days == [0, 1, 2, 3, 4]
        assert ThemeSettings.get().primary == '271 76% 34%'
