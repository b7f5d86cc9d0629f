"""Push delivery tokens kept on a user's profile.

A user holds a set of tokens, one per browser/device they subscribed from.
"""
import logging
from sqlalchemy.exc import IntegrityError
from salon import db
from salon.models.user import DeviceToken

logger = logging.getLogger(__name__)

# Browser Notification.permission values
PERMISSION_GRANTED = 'granted'
PERMISSION_DEFAULT = 'default'
PERMISSION_DENIED = 'denied'


class NotificationPermissionError(Exception):
    """Base class for subscription failures the user can act on"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class PermissionRequired(NotificationPermissionError):
    """Permission has not been asked yet; ask, then subscribe again"""


class PermissionDenied(NotificationPermissionError):
    """The browser blocks notifications for this site"""


class TokenUnavailable(NotificationPermissionError):
    """Permission is granted but no delivery token could be obtained"""


class TokenManager(object):

    def subscribe(self, user, permission, fetch_token, request_permission=None):
        """
        Add this device's token to the user's set

        - fetch_token: returns the current delivery token (or None)
        - request_permission: asks the user and returns the new permission;
          without it an undetermined permission raises PermissionRequired
        """
        if permission == PERMISSION_DEFAULT and request_permission is not None:
            permission = request_permission()
            if permission == PERMISSION_DEFAULT:
                raise PermissionRequired('Notification permission was not granted.')

        if permission == PERMISSION_GRANTED:
            token = fetch_token()
            if not token:
                raise TokenUnavailable('Could not obtain a notification token for this device.')
            self.add_token(user, token)
            return token

        if permission == PERMISSION_DEFAULT:
            raise PermissionRequired('Allow notifications in your browser to subscribe.')

        raise PermissionDenied(
            'Notifications are blocked. Enable them for this site in your browser settings.'
        )

    def add_token(self, user, token):
        existing = DeviceToken.query.filter_by(user_id=user.id, token=token).first()
        if existing is not None:
            return existing

        device_token = DeviceToken(user_id=user.id, token=token)
        db.session.add(device_token)
        try:
            db.session.commit()
        except IntegrityError:
            # Another tab stored the same token first
            db.session.rollback()
            return DeviceToken.query.filter_by(user_id=user.id, token=token).first()
        logger.info(f"Stored push token for user {user.id}")
        return device_token

    def unsubscribe(self, user, token):
        """Remove one token from the user's set; returns how many rows went away"""
        removed = DeviceToken.query.filter_by(user_id=user.id, token=token).delete()
        db.session.commit()
        if removed:
            logger.info(f"Removed push token for user {user.id}")
        return removed

    def is_subscribed(self, user, token=None):
        query = DeviceToken.query.filter_by(user_id=user.id)
        if token is not None:
            query = query.filter_by(token=token)
        return db.session.query(query.exists()).scalar()

    def tokens_for(self, user):
        return [t.token for t in user.device_tokens.order_by(DeviceToken.created_at, DeviceToken.id)]

    def forget_token(self, token):
        """Drop a token from whichever users hold it (e.g. after the gateway rejects it)"""
        removed = DeviceToken.query.filter_by(token=token).delete()
        db.session.commit()
        return removed
