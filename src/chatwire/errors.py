"""Shared error types for the conversion engine."""


class ConversionError(Exception):
    """Base error for all conversion failures."""


class InvalidMessagesError(ConversionError, TypeError):
    """A messages value that is not a list was passed where one is required."""

    def __init__(self, func: str, value: object) -> None:
        self.func = func
        self.value_type = type(value).__name__
        super().__init__(f"{func}() expects a list of messages, got {self.value_type}")


class UnknownDialectError(ConversionError):
    """No compiler is registered for the requested dialect."""

    def __init__(self, dialect: str) -> None:
        self.dialect = dialect
        super().__init__(f"Unknown dialect: {dialect}")


class UnknownProcessingTypeError(ConversionError):
    """The prompt post-processing type is not recognised."""

    def __init__(self, processing_type: str) -> None:
        self.processing_type = processing_type
        super().__init__(f"Unknown processing type: {processing_type!r}")


class SettingsError(ConversionError):
    """The converter settings file could not be read or validated."""
