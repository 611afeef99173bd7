"""Errors raised by LifeOS backend calls."""


class ApiError(Exception):
    """A backend call failed.

    Attributes:
        message: Top-level message of the error envelope (or a transport message).
        status_code: HTTP status, None when the request never reached the backend.
        response: Parsed error envelope, if the backend returned one.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response
