"""
Exception types raised by OpenAPI Fragmenter.
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .validator import ValidationError


class FragmenterError(Exception):
    """Base exception for OpenAPI Fragmenter errors."""
    pass


class InputEmptyError(FragmenterError):
    """Raised when the input text is empty or whitespace only."""

    def __init__(self, message: str = "input is empty."):
        super().__init__(message)


class InputDecodeError(FragmenterError):
    """Raised when uploaded bytes cannot be decoded as UTF-8."""
    pass


class YamlSyntaxError(FragmenterError):
    """
    Raised when the input cannot be parsed.

    Attributes:
        errors: Positional diagnostics (``ValidationError`` instances)
    """

    def __init__(self, errors: List["ValidationError"], message: Optional[str] = None):
        self.errors = list(errors)
        if message is None:
            message = ", ".join(e.message for e in self.errors) or "syntax error."
        super().__init__(message)


class StructuralError(FragmenterError):
    """Raised when a parsed document is not a mapping."""
    pass


class OperationCanceled(FragmenterError):
    """Raised at a checkpoint when a newer request superseded the pipeline."""

    def __init__(self, message: str = "operation canceled"):
        super().__init__(message)


class NoChange(FragmenterError):
    """Raised when the input is identical to the last successfully split text."""

    def __init__(self, message: str = "Input has not changed since the last split."):
        super().__init__(message)


class ExportError(FragmenterError):
    """Raised when the archive cannot be built or written."""
    pass
