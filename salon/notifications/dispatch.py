"""Fan a new promotion out to every subscribed device."""
import logging
from collections import namedtuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from salon import db
from salon.models.user import DeviceToken
from salon.notifications.gateway import PushMessage, DeliveryError, InvalidTokenError
from salon.notifications.tokens import TokenManager
from salon.signals import promotion_created

logger = logging.getLogger(__name__)

DispatchReport = namedtuple('DispatchReport', ['sent', 'failed', 'removed'])

EMPTY_REPORT = DispatchReport(0, 0, 0)


def collect_tokens():
    """Every distinct token held by any user"""
    rows = db.session.query(DeviceToken.token).distinct().order_by(DeviceToken.token).all()
    return [row[0] for row in rows]


def forget_token(token_manager, token):
    try:
        return token_manager.forget_token(token)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f"Could not remove invalid push token {token[:12]}...")
        return 0


def build_promotion_message(promotion, icon=None, site_url=''):
    return PushMessage(
        title=f'New promotion: {promotion.name}!',
        body=promotion.description,
        link=f"{site_url.rstrip('/')}/promotions",
        icon=icon,
    )


def dispatch_promotion(promotion, gateway, icon=None, site_url=''):
    """
    Send the promotion to all stored tokens, one delivery at a time.

    A failed delivery is logged and the loop carries on. Tokens the gateway
    reports as invalid are removed from their owners.
    """
    if gateway is None:
        logger.info(f"Push disabled; promotion {promotion.id} not sent")
        return EMPTY_REPORT

    tokens = collect_tokens()
    if not tokens:
        logger.info("No subscribed devices to notify")
        return EMPTY_REPORT

    logger.info(f"Sending promotion {promotion.id} ({promotion.name}) to {len(tokens)} devices")
    message = build_promotion_message(promotion, icon, site_url)
    token_manager = TokenManager()
    sent = failed = removed = 0

    for token in tokens:
        try:
            gateway.send(token, message)
            sent += 1
        except InvalidTokenError as e:
            failed += 1
            logger.warning(f"Dropping invalid push token {token[:12]}...: {e}")
            removed += forget_token(token_manager, token)
        except DeliveryError as e:
            failed += 1
            logger.error(f"Push delivery failed for token {token[:12]}...: {e}")
        except Exception:
            failed += 1
            logger.exception(f"Unexpected error sending to token {token[:12]}...")

    report = DispatchReport(sent, failed, removed)
    logger.info(f"Promotion {promotion.id} dispatch finished: {report}")
    return report


def on_promotion_created(sender, promotion=None, **extra):
    """Signal receiver; runs after the promotion is committed and never fails the request"""
    try:
        dispatch_promotion(
            promotion,
            sender.extensions.get('push_gateway'),
            icon=sender.config.get('PUSH_ICON'),
            site_url=sender.config.get('SITE_URL', ''),
        )
    except Exception:
        db.session.rollback()
        logger.exception(f"Promotion notification dispatch crashed for promotion {promotion.id}")


def connect_dispatch():
    promotion_created.connect(on_promotion_created)


def notify_promotion_created(promotion):
    promotion_created.send(current_app._get_current_object(), promotion=promotion)
