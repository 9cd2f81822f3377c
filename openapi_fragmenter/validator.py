"""
Syntax validation and canonical formatting of YAML documents.

Validation only checks that the text parses; it does not check OpenAPI
schema correctness.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml

from .errors import InputEmptyError, YamlSyntaxError

logger = logging.getLogger(__name__)

EMPTY_INPUT_MESSAGE = "input is empty."
FALLBACK_MESSAGE = "syntax error."

_LINE_RE = re.compile(r"line (\d+)", re.IGNORECASE)
_COLUMN_RE = re.compile(r"column (\d+)", re.IGNORECASE)

TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"

# Raised by PyYAML for malformed input besides YAMLError: explicit
# timestamps that are not real dates, and very deep nesting
LOAD_ERRORS = (yaml.YAMLError, ValueError, RecursionError)


@dataclass(frozen=True)
class ValidationError:
    """A single positional diagnostic (1-based line and column)."""
    line: int
    column: int
    message: str
    raw: str


@dataclass(frozen=True)
class ValidationState:
    """Result of validating one input text."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)

    @classmethod
    def valid(cls) -> "ValidationState":
        return cls(is_valid=True, errors=[])

    @classmethod
    def invalid(cls, errors: List[ValidationError]) -> "ValidationState":
        return cls(is_valid=False, errors=list(errors))


def _without_timestamps(resolvers: Dict) -> Dict:
    return {
        first: [(tag, regexp) for tag, regexp in entries if tag != TIMESTAMP_TAG]
        for first, entries in resolvers.items()
    }


class FragmentLoader(yaml.SafeLoader):
    """
    SafeLoader that keeps date-like scalars as strings.

    ``released: 2024-02-30`` loads as the string it was written as instead of
    failing in the date constructor.
    """


FragmentLoader.yaml_implicit_resolvers = _without_timestamps(yaml.SafeLoader.yaml_implicit_resolvers)


class CanonicalDumper(yaml.SafeDumper):
    """
    SafeDumper that never emits anchors or aliases and indents block
    sequences under their parent key.
    """

    def ignore_aliases(self, data: Any) -> bool:
        return True

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)


# Date-like strings are written plain, matching FragmentLoader
CanonicalDumper.yaml_implicit_resolvers = _without_timestamps(yaml.SafeDumper.yaml_implicit_resolvers)


def load_yaml(text: str) -> Any:
    """Parse one YAML document with ``FragmentLoader``."""
    return yaml.load(text, Loader=FragmentLoader)


def dump_canonical(data: Any) -> str:
    """
    Serialize data in the canonical fragment style.

    Args:
        data: Parsed YAML value

    Returns:
        YAML text with 2-space indentation, unlimited line width, no
        anchors, and keys in their original order
    """
    return yaml.dump(
        data,
        Dumper=CanonicalDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        indent=2,
        width=float("inf"),
    )


def _is_blank(text: str) -> bool:
    return not text or not text.strip()


def _diagnostic_text(error: Exception) -> str:
    """Render a parser exception as ``"Type: problem at line N, column M"``."""
    name = type(error).__name__
    mark = getattr(error, "problem_mark", None)
    problem = getattr(error, "problem", None)
    if mark is not None and problem:
        return f"{name}: {problem} at line {mark.line + 1}, column {mark.column + 1}"
    return f"{name}: {error}"


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


class YamlValidator:
    """Validates and formats YAML text."""

    def validate(self, text: str) -> ValidationState:
        """
        Check that the text is parseable YAML.

        Args:
            text: Raw document text

        Returns:
            ValidationState with at most one error
        """
        if _is_blank(text):
            return ValidationState.invalid([
                ValidationError(line=1, column=1, message=EMPTY_INPUT_MESSAGE, raw="Empty input")
            ])

        try:
            load_yaml(text)
        except LOAD_ERRORS as e:
            return ValidationState.invalid(self.parse_error(e, text))

        return ValidationState.valid()

    def parse_error(self, error: Exception, text: str) -> List[ValidationError]:
        """
        Reduce a parser exception to a positional diagnostic.

        The position is read from ``line N`` / ``column N`` tokens in the
        diagnostic text and clamped to the bounds of the input.

        Args:
            error: Exception raised by the YAML parser
            text: The text that failed to parse

        Returns:
            A list holding exactly one ValidationError
        """
        raw = _diagnostic_text(error)
        lines = text.split("\n")

        line = 1
        column = 1

        line_match = _LINE_RE.search(raw)
        if line_match:
            line = _clamp(int(line_match.group(1)), 1, len(lines))

        column_match = _COLUMN_RE.search(raw)
        if column_match:
            column = _clamp(int(column_match.group(1)), 1, len(lines[line - 1]))

        # Drop the "ExceptionType:" prefix
        message = raw
        if ":" in message:
            message = message.split(":", 1)[1].strip()

        return [
            ValidationError(
                line=line,
                column=column,
                message=message or FALLBACK_MESSAGE,
                raw=raw,
            )
        ]

    def parse(self, text: str) -> Any:
        """
        Parse text into a Python value.

        Args:
            text: Raw document text

        Returns:
            The parsed value

        Raises:
            InputEmptyError: If the text is blank
            YamlSyntaxError: If the text does not parse
        """
        if _is_blank(text):
            raise InputEmptyError(EMPTY_INPUT_MESSAGE)

        try:
            return load_yaml(text)
        except LOAD_ERRORS as e:
            raise YamlSyntaxError(self.parse_error(e, text)) from e

    def format(self, text: str) -> str:
        """
        Re-serialize text in the canonical style.

        Unparsable input is returned unchanged; it is never repaired.
        """
        if _is_blank(text):
            return text

        try:
            parsed = load_yaml(text)
        except LOAD_ERRORS:
            logger.debug("Skipping format of unparsable input")
            return text

        if parsed is None:
            return text

        return dump_canonical(parsed)

    def is_valid(self, text: str) -> bool:
        return self.validate(text).is_valid


yaml_validator = YamlValidator()
