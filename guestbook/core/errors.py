"""Base error type shared by all guestbook features."""


class GuestbookError(Exception):
    """Base guestbook error.

    Every error carries a human readable message and a stable machine code
    that the HTTP layer maps to a status code.
    """

    def __init__(self, message: str, code: str = "guestbook_error"):
        self.message = message
        self.code = code
        super().__init__(message)
