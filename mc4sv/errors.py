# mc4sv/errors.py
"""
Exception types raised by the mc4sv library code. The CLI is the only
place that turns them into an exit status.
"""


class Mc4svError(Exception):
    """Base class for every fatal session error."""


class UsageError(Mc4svError):
    """Malformed command line or out-of-range option value."""


class InvalidMulticastAddress(Mc4svError):
    pass


class InterfaceNotFound(Mc4svError):
    pass


class ServiceResolutionError(Mc4svError):
    pass


class GroupJoinError(Mc4svError):
    """
    Raised when every bind candidate failed. `cause` names the last
    operation that failed: "socket", "bind" or "join".
    """

    def __init__(self, cause, error=None):
        self.cause = cause
        self.error = error
        if error is not None and error.strerror:
            detail = error.strerror
        else:
            detail = str(error) if error is not None else "no usable address"
        super().__init__(f"{cause}: {detail}")


class SignalSetupError(Mc4svError):
    pass


class ReceiveError(Mc4svError):
    pass
