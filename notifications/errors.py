"""Notification errors surfaced to operators."""


class NotificationError(Exception):
    """Base class for notification failures that callers may act on."""


class UserNotFoundError(NotificationError):
    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class MissingPushTokenError(NotificationError):
    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User has no push token: {user_id}")
