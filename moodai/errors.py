"""
Domain errors for the MoodAI service.

These are raised by the library layer and translated to HTTP responses by the
server. Nothing below the server imports FastAPI.
"""


class MoodAIError(Exception):
    """Base class for all MoodAI errors."""


class InvalidInput(MoodAIError):
    """Raised when a message is empty or whitespace-only."""


class ClassificationUnavailable(MoodAIError):
    """Raised when the sentiment primitive cannot produce a score."""


class NotFound(MoodAIError):
    """Raised when a user or record does not exist."""


class DuplicateUser(MoodAIError):
    """Raised when an email or username is already registered."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"{field} already registered")


class DuplicatePayment(MoodAIError):
    """Raised when a payment id has already been used to book a consultation."""


class PaymentError(MoodAIError):
    """Raised when the payment gateway rejects or fails an order request."""
