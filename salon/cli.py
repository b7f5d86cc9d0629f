"""Operator commands. Admin rights can only be changed from here."""
import click
from salon import db
from salon.models.user import User, AdminGrant
from salon.models.availability import BusinessHours
from salon.models.site_config import ThemeSettings


def _find_user(email):
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user is None:
        raise click.ClickException(f'No user registered with {email}')
    return user


def register_commands(app):

    @app.cli.command('grant-admin')
    @click.argument('email')
    @click.option('--by', 'granted_by', default=None, help='Who approved the grant.')
    def grant_admin(email, granted_by):
        """Give EMAIL access to the admin dashboard."""
        user = _find_user(email)
        if user.admin_grant is not None:
            click.echo(f'{user.email} is already an admin')
            return
        db.session.add(AdminGrant(user_id=user.id, granted_by=granted_by))
        db.session.commit()
        app.logger.info(f"Admin granted to {user.email} by {granted_by or 'cli'}")
        click.echo(f'{user.email} is now an admin')

    @app.cli.command('revoke-admin')
    @click.argument('email')
    def revoke_admin(email):
        """Remove EMAIL's admin access."""
        user = _find_user(email)
        removed = AdminGrant.query.filter_by(user_id=user.id).delete()
        db.session.commit()
        if removed:
            app.logger.info(f"Admin revoked from {user.email}")
            click.echo(f'{user.email} is no longer an admin')
        else:
            click.echo(f'{user.email} was not an admin')

    @app.cli.command('seed-defaults')
    def seed_defaults():
        """Create default business hours and theme if they are missing."""
        if BusinessHours.get() is None:
            db.session.add(BusinessHours())
            click.echo('Business hours set to 09:00-18:00, Monday to Friday')
        ThemeSettings.get_or_create()
        db.session.commit()
        click.echo('Defaults in place')
