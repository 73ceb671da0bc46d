"""Exception types raised by the forum services and mapped by the JSON API."""


class ForumError(Exception):
    """Base class for errors that carry an HTTP status for the API layer."""

    status = 500
    default_message = "An unknown error occurred."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RegistrationMethodError(ForumError):
    status = 400
    default_message = "The site is not configured for the approval registration method."


class ConflictError(ForumError):
    """The action does not apply to the record's current state."""

    status = 409
    default_message = "The application specified is already an active user."


class UpstreamError(ForumError):
    status = 500
    default_message = "An unknown error occurred while attempting to create the application."


class UnsupportedRecordType(ValueError):
    """Raised when a record type cannot be flagged for review."""

    def __init__(self, record_type):
        self.record_type = record_type
        super().__init__(f"Unsupported record type: {record_type}")
