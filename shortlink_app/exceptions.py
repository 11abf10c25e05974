"""
Error taxonomy shared by the services.

Services raise these; ``main.py`` maps them to HTTP responses.
"""

from fastapi import status


class ShortLinkError(Exception):
    """Base class for all service errors"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ShortLinkError):
    """Unknown or tombstoned code, or any other missing resource"""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ShortLinkError):
    """Concurrent writers collided and the conflict could not be recovered"""

    status_code = status.HTTP_409_CONFLICT


class UnavailableError(ShortLinkError):
    """The store is unreachable or timed out"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InvalidInputError(ShortLinkError):
    """Malformed input rejected before touching the store"""

    status_code = status.HTTP_400_BAD_REQUEST
