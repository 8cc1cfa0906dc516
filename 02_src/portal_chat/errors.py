"""Exceptions raised by the messaging core."""


class ChatError(Exception):
    """Base class for messaging core errors."""


class BackendError(ChatError):
    """A backend call failed (transport error, HTTP error or unsuccessful envelope)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AttachmentRejected(ChatError):
    """A selected file violates the attachment policy."""

    def __init__(self, file_name: str, reason: str, blocking: bool = False):
        super().__init__(f"{file_name}: {reason}")
        self.file_name = file_name
        self.reason = reason
        # Blocking rejections must be shown to the operator
        self.blocking = blocking
