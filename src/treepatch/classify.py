"""Text/binary classification based on a sampled prefix of the content."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import BinaryIO

SAMPLE_SIZE = 1024
BINARY_THRESHOLD = 95

_ASCII_CONTROLS = frozenset({0x09, 0x0A, 0x0C, 0x0D})


class ContentKind(str, Enum):
    """How a file's contents are diffed."""

    TEXT = "TEXT"
    BINARY = "BINARY"


def classify_sample(sample: bytes) -> ContentKind:
    """Classify an already-sampled byte string.

    Any byte below ``0x09`` marks the content binary straight away. Otherwise
    the content is binary only when more than 95% of the sampled bytes fall
    outside printable ASCII and the common whitespace controls.
    """
    ascii_like = 0
    other = 0
    for value in sample:
        if value < 0x09:
            return ContentKind.BINARY
        if value in _ASCII_CONTROLS or 0x20 <= value <= 0x7E:
            ascii_like += 1
        else:
            other += 1

    if other == 0:
        return ContentKind.TEXT
    if (100 * other) // (ascii_like + other) > BINARY_THRESHOLD:
        return ContentKind.BINARY
    return ContentKind.TEXT


def classify_stream(stream: BinaryIO) -> ContentKind:
    """Sample up to 1KB from ``stream``, close it, and classify the sample."""
    try:
        sample = stream.read(SAMPLE_SIZE) or b""
    finally:
        stream.close()
    return classify_sample(sample)


def classify_bytes(data: bytes) -> ContentKind:
    return classify_sample(data[:SAMPLE_SIZE])


def classify_file(path: Path) -> ContentKind:
    return classify_stream(Path(path).open("rb"))


def is_binary(data: bytes) -> bool:
    return classify_bytes(data) is ContentKind.BINARY
