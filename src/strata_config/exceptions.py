"""Exceptions for strata-config."""


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileError(ConfigError):
    """Error reading or writing configuration file."""

    pass


class ConfigParseError(ConfigError):
    """Configuration content is malformed."""

    pass


class ConfigSerializationError(ConfigError):
    """A value or document cannot be encoded in the target format."""

    pass


class ConfigValidationError(ConfigError):
    """Error validating configuration data."""

    pass


class FormatMismatchError(ConfigError):
    """No format backend matches the requested file."""

    pass


class InvalidPathError(ConfigError):
    """Dotted path is empty or contains an empty segment."""

    pass


class KeyNotFoundError(ConfigError):
    """A dotted path that must exist does not."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Key not found: {path}")


class TypeMismatchError(ConfigError):
    """Stored value kind disagrees with the requested or required kind.

    Also raised when a dotted path tries to descend through a non-mapping
    node, which is a conflict between the path shape and existing data.
    """

    def __init__(self, expected: str, actual: str, path: str | None = None):
        self.expected = expected
        self.actual = actual
        self.path = path
        location = f" at '{path}'" if path else ""
        super().__init__(f"Type mismatch{location}: expected {expected}, got {actual}")
