from enum import Enum
from functools import wraps
from collections.abc import Mapping
from flask import flash, redirect, url_for, render_template, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from salon import db
from salon.models.user import AdminGrant


class SessionRole(Enum):
    UNKNOWN = 'unknown'
    ADMIN = 'admin'
    MEMBER = 'member'


def _admin_flag(profile):
    if isinstance(profile, Mapping):
        return profile.get('is_admin', profile.get('isAdmin'))
    return getattr(profile, 'is_admin', None)


def classify_session(identity, profile, loading=False):
    """
    Decide whether a session belongs to an administrator

    UNKNOWN while the identity or its profile is still being read; callers
    must not treat it as a final "not an admin" answer.
    """
    if loading:
        return SessionRole.UNKNOWN
    if identity is None:
        return SessionRole.MEMBER
    if profile is None:
        return SessionRole.UNKNOWN
    return SessionRole.ADMIN if _admin_flag(profile) else SessionRole.MEMBER


def load_admin_profile(user):
    """Profile view used by the gate: {'is_admin': bool}, or None if unreadable"""
    try:
        grant = db.session.get(AdminGrant, user.id)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Could not read admin grant for user {user.id}: {e}")
        return None
    return {'is_admin': grant is not None}


def current_session_role():
    if not current_user.is_authenticated:
        return SessionRole.MEMBER
    return classify_session(current_user, load_admin_profile(current_user))


# Custom decorator to ensure only admins can access these routes
def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        role = current_session_role()
        if role is SessionRole.UNKNOWN:
            response = current_app.make_response((render_template('errors/checking_access.html'), 503))
            response.headers['Retry-After'] = '2'
            return response
        if role is not SessionRole.ADMIN:
            flash('Access denied. This area is for administrators only.', 'danger')
            return redirect(url_for('main.index'))
        return f(*args, **kwargs)
    return decorated_function
