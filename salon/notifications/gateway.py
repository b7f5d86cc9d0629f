"""Push delivery through Firebase Cloud Messaging."""
import logging
from collections import namedtuple

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = 'salon-push'

PushMessage = namedtuple('PushMessage', ['title', 'body', 'link', 'icon'])


class DeliveryError(Exception):
    """A push could not be delivered; the token may still be valid"""


class InvalidTokenError(DeliveryError):
    """The gateway rejected the token for good; it should be forgotten"""


class FirebasePushGateway(object):

    def __init__(self, firebase_app):
        self.firebase_app = firebase_app

    def build_message(self, token, message):
        fcm_options = None
        # FCM only accepts absolute https links for web push clicks
        if message.link and message.link.startswith('https://'):
            fcm_options = messaging.WebpushFCMOptions(link=message.link)
        return messaging.Message(
            token=token,
            notification=messaging.Notification(title=message.title, body=message.body),
            webpush=messaging.WebpushConfig(
                notification=messaging.WebpushNotification(icon=message.icon),
                fcm_options=fcm_options,
            ),
        )

    def send(self, token, message):
        try:
            return messaging.send(self.build_message(token, message), app=self.firebase_app)
        except (messaging.UnregisteredError, messaging.SenderIdMismatchError) as e:
            raise InvalidTokenError(str(e)) from e
        except firebase_exceptions.InvalidArgumentError as e:
            # INVALID_ARGUMENT also covers payload errors that say nothing about the token
            if is_token_rejection(e):
                raise InvalidTokenError(str(e)) from e
            raise DeliveryError(str(e)) from e
        except firebase_exceptions.FirebaseError as e:
            raise DeliveryError(str(e)) from e


def is_token_rejection(error):
    return 'registration token' in str(error).lower()


def init_push_gateway(app):
    """Store the gateway in app.extensions['push_gateway'] (None when disabled)"""
    gateway = app.config.get('PUSH_GATEWAY')
    if gateway is None and app.config.get('FIREBASE_CREDENTIALS'):
        try:
            firebase_app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            cred = credentials.Certificate(app.config['FIREBASE_CREDENTIALS'])
            firebase_app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)
        gateway = FirebasePushGateway(firebase_app)

    if gateway is None:
        app.logger.info("FIREBASE_CREDENTIALS not set; push notifications are disabled")
    app.extensions['push_gateway'] = gateway
    return gateway
