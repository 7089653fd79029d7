"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidStatusTransitionError(AppException):
    """Raised when an appointment status would move backwards."""

    def __init__(self, current: str, target: str):
        """Initialize with the rejected transition."""
        self.current = current
        self.target = target
        super().__init__(
            f"Appointment status cannot change from '{current}' to '{target}'",
            status_code=409,
        )


class MessagingError(Exception):
    """Base exception for event bus failures."""


class MalformedMessageError(MessagingError):
    """A message that redelivery cannot fix.

    Raised for undecodable bodies, unknown envelopes and events missing
    required fields. Consumers drop these instead of retrying.
    """

    def __init__(self, message: str, body: str | bytes | None = None):
        """Initialize with a reason and the offending body."""
        self.body = body
        super().__init__(message)


class PublishError(MessagingError):
    """Publishing to a topic failed."""

    def __init__(self, topic: str, reason: str):
        """Initialize with topic name and failure reason."""
        self.topic = topic
        self.reason = reason
        super().__init__(f"Publish to '{topic}' failed: {reason}")
