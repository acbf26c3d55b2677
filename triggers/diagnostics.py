"""Operator test push to a single user."""

import structlog

from notifications.dispatcher import NotificationDispatcher
from notifications.errors import MissingPushTokenError, UserNotFoundError
from notifications.formatter import format_test_notification
from notifications.ports import UserStore
from notifications.types import DispatchResult, DispatchTarget, UserRecord

log = structlog.get_logger(__name__)


async def send_test_notification(
    user_id: str,
    user_store: UserStore,
    dispatcher: NotificationDispatcher,
    message: str | None = None,
) -> DispatchResult:
    """Send a test push to one user by id.

    Raises:
        UserNotFoundError: no user document with this id.
        MissingPushTokenError: the user has never registered a push token.
    """
    doc = await user_store.get(user_id)
    if doc is None:
        raise UserNotFoundError(user_id)
    user = UserRecord.from_document(doc)
    if not user.push_token:
        raise MissingPushTokenError(user_id)

    target = DispatchTarget(
        user_id=user.id,
        push_token=user.push_token,
        display_name=user.display_name,
    )
    result = await dispatcher.dispatch(format_test_notification(target, message))
    log.info("test_notification_sent", user=user.label, delivered=result.delivered_count)
    return result
