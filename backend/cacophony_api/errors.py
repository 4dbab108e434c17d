"""
Cacophony API - Error types

Services raise these; the handlers registered in ``main.py`` turn them into
the standard response envelope.
"""
from typing import List, Optional, Union

from fastapi import status


class APIError(Exception):
    """
    Base class for errors that are reported to the API client.

    Attributes:
        http_status: HTTP status code for the response
        user_message: Default message when none is given
    """
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    user_message: str = "Internal server error"

    def __init__(self, messages: Optional[Union[str, List[str]]] = None, status_code: Optional[int] = None):
        if messages is None:
            messages = [self.user_message]
        elif isinstance(messages, str):
            messages = [messages]
        self.messages = messages
        if status_code is not None:
            self.http_status = status_code
        super().__init__("; ".join(messages))


class ClientError(APIError):
    """Malformed or unacceptable request."""
    http_status = status.HTTP_400_BAD_REQUEST
    user_message = "Bad request"


class ConflictError(ClientError):
    """A unique name is already taken."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    user_message = "Name in use"


class AuthenticationError(APIError):
    """Missing, invalid or expired credentials."""
    http_status = status.HTTP_401_UNAUTHORIZED
    user_message = "Not authenticated"


class AuthorizationError(APIError):
    """Authenticated, but not allowed to do this."""
    http_status = status.HTTP_403_FORBIDDEN
    user_message = "Not authorized"


class NotFoundError(APIError):
    http_status = status.HTTP_404_NOT_FOUND
    user_message = "Not found"
