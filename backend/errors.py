"""Error types raised by room operations and reported back to the client."""


class RoomError(Exception):
    """Base class for per-message failures. ``message`` is shown to the client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RoomError):
    pass


class CapacityError(RoomError):
    pass


class RoomFullError(CapacityError):
    pass


class NotFoundError(RoomError):
    pass


class AuthorizationError(RoomError):
    """Non-host tried a host-only action. Never reported to the client."""


class RateLimitError(RoomError):
    pass


class ProtocolError(RoomError):
    pass
