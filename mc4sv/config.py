# mc4sv/config.py
from collections import namedtuple

from .errors import UsageError
from .validation import SessionValidator

DEFAULT_GROUP = "224.0.0.1"
DEFAULT_SERVICE = "discard"
MAX_TIMEOUT = 3600  # seconds
IFNAMSIZ = 16  # includes the trailing NUL, as in <net/if.h>

# Immutable once built.
SessionConfig = namedtuple(
    "SessionConfig", ["group", "service", "interface", "quiet", "timeout"]
)


def build_session_config(settings):
    """
    Validates a dict of raw settings and returns a SessionConfig.
    Missing keys fall back to the defaults above.

    Raises UsageError with a message naming the offending value.
    """
    merged = {
        "group": DEFAULT_GROUP,
        "service": DEFAULT_SERVICE,
        "interface": None,
        "quiet": False,
        "timeout": 0,
    }
    merged.update({k: v for k, v in settings.items() if v is not None})

    payload, error = SessionValidator(MAX_TIMEOUT, IFNAMSIZ - 1).validate(merged)
    if error:
        raise UsageError(error)

    return SessionConfig(
        group=payload["group"],
        service=str(payload["service"]),
        interface=payload["interface"],
        quiet=payload["quiet"],
        timeout=payload["timeout"],
    )
