"""
Text/binary classification for scanned files.

Two stages: a fixed extension lookup that never touches the file, then a
bounded sample of the leading bytes inspected for byte-order marks, known
binary magic numbers and NUL bytes.
"""

import codecs
import logging
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_BYTES = 4096

# Well-known text formats: classified without reading the file
TEXT_EXTENSIONS: frozenset[str] = frozenset([
    "txt", "md", "rs", "ts", "tsx", "js", "jsx", "json", "toml", "yaml",
    "yml", "xml", "html", "css", "scss", "less", "ini", "cfg", "log",
])

# Images, archives, executables, fonts, audio/video: classified without reading
BINARY_EXTENSIONS: frozenset[str] = frozenset([
    # Images and documents
    "png", "jpg", "jpeg", "gif", "bmp", "webp", "ico", "svgz", "heic", "pdf",
    # Archives
    "zip", "gz", "bz2", "xz", "7z", "rar", "tar",
    # Executables and libraries
    "wasm", "exe", "dll", "so", "dylib",
    # Fonts
    "ttf", "otf", "woff", "woff2",
    # Audio/video
    "mp3", "wav", "flac", "mp4", "mkv", "mov", "avi",
])

# Checked longest first so UTF-32 LE is not mistaken for UTF-16 LE
_BYTE_ORDER_MARKS: tuple[bytes, ...] = (
    codecs.BOM_UTF32_LE,
    codecs.BOM_UTF32_BE,
    codecs.BOM_UTF8,
    codecs.BOM_UTF16_LE,
    codecs.BOM_UTF16_BE,
)

_BINARY_MAGIC_NUMBERS: tuple[bytes, ...] = (b"%PDF",)


class Classification(str, Enum):
    """Result of classifying a file."""

    TEXT = "text"
    BINARY = "binary"

    @property
    def is_binary(self) -> bool:
        return self is Classification.BINARY


def classify_extension(path: Path) -> Classification | None:
    """
    Classify by extension alone.

    Returns:
        Classification, or None if the extension is not in either list
    """
    ext = path.suffix[1:].lower()
    if not ext:
        return None
    if ext in TEXT_EXTENSIONS:
        return Classification.TEXT
    if ext in BINARY_EXTENSIONS:
        return Classification.BINARY
    return None


def classify_bytes(sample: bytes) -> Classification:
    """
    Classify a leading-byte sample.

    UTF-8/16/32 byte-order marks mean text (UTF-16/32 text legitimately
    contains NUL bytes); a known binary magic number or any NUL byte means
    binary; everything else is text.
    """
    for bom in _BYTE_ORDER_MARKS:
        if sample.startswith(bom):
            return Classification.TEXT

    for magic in _BINARY_MAGIC_NUMBERS:
        if sample.startswith(magic):
            return Classification.BINARY

    if b"\x00" in sample:
        return Classification.BINARY

    return Classification.TEXT


def classify(path: Path, sample_bytes: int = DEFAULT_SAMPLE_BYTES) -> Classification:
    """
    Classify a file as text or binary.

    Args:
        path: File to classify
        sample_bytes: Maximum number of leading bytes to read

    Returns:
        Classification of the file

    Raises:
        OSError: If the file has to be sampled and cannot be opened or read
    """
    path = Path(path)
    by_extension = classify_extension(path)
    if by_extension is not None:
        return by_extension

    with path.open("rb") as f:
        sample = f.read(max(0, sample_bytes))

    return classify_bytes(sample)


def is_binary_file(path: Path, sample_bytes: int = DEFAULT_SAMPLE_BYTES) -> bool:
    """Boolean form of classify()."""
    return classify(path, sample_bytes).is_binary
