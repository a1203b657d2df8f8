"""Document model produced by the compiler and consumed by the renderer.

A study guide is a title, an author line and a flat, ordered list of
blocks.  Each block kind is its own frozen dataclass so the renderer
can dispatch on the type, and so a document can be handed from the
compiler to the renderer as a plain immutable value.

    RawDocument         title + body lines, straight from the model
    StructuredDocument  title + author + classified blocks
"""

import re
from dataclasses import dataclass
from enum import StrEnum


class BlockKind(StrEnum):
    HEADING = "heading"
    CONTEXT = "context"
    ANALOGY = "analogy"
    CHALLENGE = "challenge"
    WARNING = "warning"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class Heading:
    """Section label, e.g. ``SECCIÓN: Introducción``."""

    label: str
    kind = BlockKind.HEADING

    @property
    def text(self) -> str:
        return self.label


@dataclass(frozen=True)
class ContextNote:
    """Why the next concept matters (``CONTEXTO:``)."""

    payload: str
    kind = BlockKind.CONTEXT

    @property
    def text(self) -> str:
        return self.payload


@dataclass(frozen=True)
class AnalogyNote:
    """Everyday comparison for a concept (``ANALOGÍA:``)."""

    payload: str
    kind = BlockKind.ANALOGY

    @property
    def text(self) -> str:
        return self.payload


@dataclass(frozen=True)
class ChallengeQuestion:
    """Active-recall question (``PREGUNTA:`` or ``RETO:``)."""

    payload: str
    kind = BlockKind.CHALLENGE

    @property
    def text(self) -> str:
        return self.payload


@dataclass(frozen=True)
class WarningNote:
    """Highlighted caveat (``NOTA:``)."""

    payload: str
    kind = BlockKind.WARNING

    @property
    def text(self) -> str:
        return self.payload


@dataclass(frozen=True)
class Paragraph:
    """Untagged body text."""

    payload: str
    kind = BlockKind.PARAGRAPH

    @property
    def text(self) -> str:
        return self.payload


Block = Heading | ContextNote | AnalogyNote | ChallengeQuestion | WarningNote | Paragraph


@dataclass(frozen=True)
class RawDocument:
    title: str
    body_lines: tuple[str, ...]


_WHITESPACE_RE = re.compile(r"\s+")
_PATH_SEP_RE = re.compile(r"[\\/]")


@dataclass(frozen=True)
class StructuredDocument:
    """The compiled, immutable study guide."""

    title: str
    author: str
    blocks: tuple[Block, ...]

    @property
    def is_empty(self) -> bool:
        return not self.blocks

    @property
    def filename(self) -> str:
        """PDF file name: whitespace runs in the title become ``_``."""
        stem = _WHITESPACE_RE.sub("_", self.title.strip())
        stem = _PATH_SEP_RE.sub("-", stem)
        return f"{stem or 'guia'}.pdf"

    def count_by_kind(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for block in self.blocks:
            counts[block.kind] = counts.get(block.kind, 0) + 1
        return counts
