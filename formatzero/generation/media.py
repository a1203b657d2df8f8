"""Encode uploaded photos and recordings as inline model input.

Each accepted file becomes a :class:`MediaPart` (base64 text plus a
MIME type), which :mod:`formatzero.generation.llm` turns into one
content block of the request.

Files are encoded concurrently on a thread pool, but the returned list
always follows the order in which the files were given: the model reads
the parts in sequence, so page 2 of the notes must stay after page 1.
"""

import base64
import logging
import mimetypes
import os
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from formatzero.config import CFG

logger = logging.getLogger(__name__)

MAX_WORKERS: int = int(CFG.get("max_workers", 4))

# MIME type → accepted file extensions (upload widget + CLI filter)
ACCEPTED_TYPES: dict[str, list[str]] = {
    "image/png": [".png"],
    "image/jpeg": [".jpg", ".jpeg"],
    "image/webp": [".webp"],
    "audio/mpeg": [".mp3"],
    "audio/wav": [".wav"],
    "audio/mp4": [".m4a"],
    "audio/ogg": [".ogg"],
}

ACCEPTED_EXTENSIONS: list[str] = [
    ext for exts in ACCEPTED_TYPES.values() for ext in exts
]


@dataclass(frozen=True)
class SourceFile:
    """One uploaded file, before encoding."""

    name: str
    mime_type: str
    content: bytes


@dataclass(frozen=True)
class MediaPart:
    """One inline part of a generation request."""

    data: str       # base64, no ``data:`` prefix
    mime_type: str

    @property
    def is_audio(self) -> bool:
        return self.mime_type.startswith("audio/")


def is_supported(mime_type: str) -> bool:
    """Return True for images and audio, the only inputs the model reads."""
    return mime_type.startswith(("image/", "audio/"))


def guess_mime_type(filename: str) -> str:
    """Guess the MIME type of *filename* from its extension."""
    ext = os.path.splitext(filename)[1].lower()
    for mime, exts in ACCEPTED_TYPES.items():
        if ext in exts:
            return mime
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def read_source_file(path: str) -> SourceFile:
    """Load *path* from disk as a :class:`SourceFile`."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Source file not found: {path}")
    with open(path, "rb") as fh:
        content = fh.read()
    return SourceFile(
        name=os.path.basename(path),
        mime_type=guess_mime_type(path),
        content=content,
    )


def filter_supported(files: Iterable[SourceFile]) -> list[SourceFile]:
    """Keep image and audio files, logging the ones that are skipped."""
    kept: list[SourceFile] = []
    for f in files:
        if is_supported(f.mime_type):
            kept.append(f)
        else:
            logger.warning(f"Skipping {f.name}: unsupported type {f.mime_type}")
    return kept


def encode_file(source: SourceFile) -> MediaPart:
    """Base64-encode a single file."""
    data = base64.b64encode(source.content).decode("ascii")
    logger.debug(
        f"Encoded {source.name} ({source.mime_type}, {len(source.content):,} bytes)"
    )
    return MediaPart(data=data, mime_type=source.mime_type)


def encode_files(
    files: Iterable[SourceFile],
    max_workers: int = MAX_WORKERS,
) -> list[MediaPart]:
    """Encode *files* concurrently, returning parts in input order."""
    files = list(files)
    if not files:
        return []
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        parts = list(pool.map(encode_file, files))
    logger.info(f"Encoded {len(parts)} file(s) for generation")
    return parts
