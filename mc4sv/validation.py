"""
This module defines the JSON schema used to validate the settings of a
receive session before any resolution or socket work is attempted.
"""

from jsonschema import ValidationError, validate


def session_schema(max_timeout, max_ifname):
    """Builds the session settings schema for the given limits."""
    return {
        "type": "object",
        "properties": {
            "group": {"type": "string", "minLength": 1},
            "service": {"type": ["string", "integer"]},
            "interface": {
                "type": ["string", "null"],
                "minLength": 1,
                "maxLength": max_ifname,
            },
            "quiet": {"type": "boolean"},
            "timeout": {"type": "integer", "minimum": 0, "maximum": max_timeout},
        },
        "required": ["group", "service", "interface", "quiet", "timeout"],
        "additionalProperties": False,
    }


class SessionValidator:
    """A validator for receive session settings."""

    def __init__(self, max_timeout=3600, max_ifname=15):
        self.max_timeout = max_timeout
        self.schema = session_schema(max_timeout, max_ifname)

    def validate(self, settings):
        """
        Validates the session settings against the schema.

        Args:
            settings (dict): Raw settings, typically parsed from argv.

        Returns:
            tuple(dict, str|None): A tuple of (validated_settings, error_message).
                                   If validation fails, settings is None.
        """
        try:
            validate(instance=settings, schema=self.schema)
            return settings, None
        except ValidationError as e:
            field = ".".join(str(p) for p in e.absolute_path)
            message = self._limit_message(field, e)
            if message:
                return None, message
            if field:
                return None, f"Invalid {field}: {e.message}"
            return None, f"Invalid session settings: {e.message}"

    def _limit_message(self, field, error):
        """Phrases range errors on interface and timeout the way the CLI reports them."""
        if field == "interface" and error.validator == "maxLength":
            return f"{error.instance}: interface name too long"
        if field == "timeout" and error.validator == "maximum":
            return f"{error.instance}: invalid timeout (>{self.max_timeout})"
        if field == "timeout" and error.validator == "minimum":
            return f"{error.instance}: invalid timeout"
        return None
