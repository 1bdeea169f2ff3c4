class APIFailureException(Exception):
    """Raised when an upstream portal or api returns a non-success response."""


class ValidationException(Exception):
    """Raised when an aggregation request is malformed.

    Raised before any network call is attempted.
    """
