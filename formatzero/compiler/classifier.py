"""Classify sanitized lines into study-guide blocks.

The model is asked to prefix lines with Spanish tags.  Each line is
classified on its own, first match wins:

    SECCIÓN:             → Heading
    CONTEXTO:            → ContextNote
    ANALOGÍA:            → AnalogyNote
    PREGUNTA: / RETO:    → ChallengeQuestion
    NOTA:                → WarningNote
    anything else        → Paragraph

Tags are matched case-insensitively at the start of the line only and
must be spelled with their accents.  A keyword counts as a tag only when
a colon follows it directly or it is the whole line, so prose such as
``"Nota que…"`` or ``"Sección 2: …"`` stays a paragraph.  The text
after the first colon becomes the block text; when there is none
(``"NOTA"``, ``"RETO:"``) the whole line is used so no block is ever
empty.
"""

import logging
import unicodedata
from collections.abc import Callable, Iterable

from formatzero.compiler.blocks import (
    AnalogyNote,
    Block,
    ChallengeQuestion,
    ContextNote,
    Heading,
    Paragraph,
    WarningNote,
)

logger = logging.getLogger(__name__)

# Order matters: first matching keyword wins.
TAGS: tuple[tuple[str, Callable[[str], Block]], ...] = (
    ("SECCIÓN", Heading),
    ("CONTEXTO", ContextNote),
    ("ANALOGÍA", AnalogyNote),
    ("PREGUNTA", ChallengeQuestion),
    ("RETO", ChallengeQuestion),
    ("NOTA", WarningNote),
)


def _match_tag(line: str) -> Callable[[str], Block] | None:
    """Return the block constructor for the tag *line* starts with."""
    head = unicodedata.normalize("NFC", line).upper()
    for keyword, factory in TAGS:
        if not head.startswith(keyword):
            continue
        rest = head[len(keyword):]
        # "NOTA" alone is a tag; "NOTA que…" and "NOTABLE" are prose.
        if not rest or rest.startswith(":"):
            return factory
    return None


def extract_payload(line: str) -> str:
    """Return the text after the first colon, or *line* if that is empty.

    Colons after the first one are kept: ``"NOTA: a: b"`` → ``"a: b"``.
    """
    _, sep, rest = line.partition(":")
    payload = rest.strip() if sep else ""
    return payload or line


def classify_line(line: str) -> Block | None:
    """Map one sanitized line to a block; ``None`` for a blank line."""
    text = line.strip()
    if not text:
        return None

    factory = _match_tag(text)
    if factory is None:
        return Paragraph(text)
    return factory(extract_payload(text))


def classify_lines(lines: Iterable[str]) -> list[Block]:
    """Classify *lines* in order, skipping the ones that yield nothing."""
    blocks: list[Block] = []
    for line in lines:
        block = classify_line(line)
        if block is not None:
            blocks.append(block)
    logger.debug(f"Classified {len(blocks)} block(s)")
    return blocks
