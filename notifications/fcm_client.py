"""Firebase Cloud Messaging adapter for the PushClient port."""

import asyncio

import structlog
from firebase_admin import App, exceptions as fb_exceptions, messaging

from notifications.types import NotificationJob, SendOutcome
from utils.retry import sanitize_error

log = structlog.get_logger(__name__)


def is_invalid_token_error(error: Exception | None) -> bool:
    """True for FCM errors meaning the registration token is dead."""
    if error is None:
        return False
    if isinstance(error, (messaging.UnregisteredError, messaging.SenderIdMismatchError)):
        return True
    if isinstance(error, fb_exceptions.InvalidArgumentError):
        return "registration token" in str(error).lower()
    return False


def _error_code(error: Exception | None) -> str | None:
    if error is None:
        return None
    code = getattr(error, "code", None)
    return str(code) if code else type(error).__name__


def classify_response(response: messaging.SendResponse) -> SendOutcome:
    """Map one SDK SendResponse onto a SendOutcome."""
    if response.success:
        return SendOutcome(success=True)
    return SendOutcome(
        success=False,
        error_code=_error_code(response.exception),
        token_invalid=is_invalid_token_error(response.exception),
    )


def build_multicast_message(job: NotificationJob, tokens: list[str]) -> messaging.MulticastMessage:
    """Build the multicast message with APNs and Android delivery hints."""
    high = job.priority == "high"

    aps = messaging.Aps(
        alert=messaging.ApsAlert(title=job.title, body=job.body),
        sound="default",
        badge=job.badge,
        content_available=job.content_available or None,
        mutable_content=job.mutable_content or None,
        category=job.apns_category,
        thread_id=job.thread_id,
    )
    apns = messaging.APNSConfig(
        headers={"apns-priority": "10" if high else "5", "apns-push-type": "alert"},
        payload=messaging.APNSPayload(aps=aps, **job.apns_custom),
    )
    android = messaging.AndroidConfig(
        priority="high" if high else "normal",
        notification=messaging.AndroidNotification(
            channel_id=job.channel_id,
            sound="default",
            tag=job.thread_id,
        ),
    )

    return messaging.MulticastMessage(
        tokens=tokens,
        notification=messaging.Notification(title=job.title, body=job.body),
        data={k: str(v) for k, v in job.data.items()},
        apns=apns,
        android=android,
    )


class FCMPushClient:
    """Sends multicast pushes through the Firebase Admin SDK.

    The SDK is synchronous, so each send runs in a worker thread.
    """

    def __init__(self, app: App | None = None, dry_run: bool = False) -> None:
        self._app = app
        self._dry_run = dry_run

    async def send_multicast(self, job: NotificationJob, tokens: list[str]) -> list[SendOutcome]:
        if not tokens:
            return []
        message = build_multicast_message(job, tokens)
        try:
            batch = await asyncio.to_thread(
                messaging.send_each_for_multicast, message, self._dry_run, self._app
            )
        except fb_exceptions.FirebaseError as e:
            log.error(
                "fcm_send_failed",
                type=job.type.value,
                tokens=len(tokens),
                error=sanitize_error(str(e)),
            )
            raise

        log.debug(
            "fcm_batch_sent",
            type=job.type.value,
            success=batch.success_count,
            failure=batch.failure_count,
        )
        return [classify_response(r) for r in batch.responses]
