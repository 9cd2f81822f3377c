"""
Cheap change detection for input text.

The fingerprint is a 32-bit rolling hash. It is not cryptographic and
collisions are accepted; it only saves a redundant split.
"""

from typing import Optional


def fingerprint(text: str) -> int:
    """
    Compute ``hash = hash * 31 + code`` over every character, wrapped to a
    signed 32-bit integer.

    Args:
        text: Input text

    Returns:
        Signed 32-bit fingerprint
    """
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return h


class ChangeDetector:
    """Remembers the fingerprint of the last successfully split text."""

    def __init__(self, last: Optional[int] = None):
        self.last = last

    def is_unchanged(self, text: str) -> bool:
        return self.last is not None and fingerprint(text) == self.last

    def record(self, text: str) -> int:
        self.last = fingerprint(text)
        return self.last

    def reset(self) -> None:
        self.last = None
