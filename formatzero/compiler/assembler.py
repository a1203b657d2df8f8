"""Turn raw model output into a :class:`StructuredDocument`.

The model is told to put the guide title on line 1.  Everything after
it is body text, which is sanitized and classified line by line::

    from formatzero.compiler.assembler import compile_document

    doc = compile_document(model_text, author="ana@example.com")
    doc.title     # "Fotosíntesis"
    doc.blocks    # (Heading("Introducción"), ContextNote(...), ...)

Nothing here can fail: empty output gives a document with the default
title and no blocks, which the renderer shows as a placeholder.
"""

import logging

from formatzero.compiler.blocks import RawDocument, StructuredDocument
from formatzero.compiler.classifier import classify_lines
from formatzero.compiler.sanitizer import (
    DEFAULT_PREAMBLE_MARKER,
    sanitize_lines,
    strip_markup,
)
from formatzero.config import CFG

logger = logging.getLogger(__name__)

DEFAULT_TITLE: str = str(CFG.get("default_title", "Guía de Aprendizaje"))
DEFAULT_AUTHOR: str = str(CFG.get("default_author", "Estudiante"))


def split_raw(text: str, default_title: str = DEFAULT_TITLE) -> RawDocument:
    """Split model output into a title and the body lines that follow it.

    The title is the first non-blank line, trimmed and stripped of
    Markdown markers.  Lines before it are blank and carry nothing.
    """
    lines = (text or "").splitlines()
    for idx, line in enumerate(lines):
        title = strip_markup(line).strip()
        if title:
            return RawDocument(title=title, body_lines=tuple(lines[idx + 1:]))
    return RawDocument(title=default_title, body_lines=())


def assemble(
    raw: RawDocument,
    author: str = DEFAULT_AUTHOR,
    marker: str = DEFAULT_PREAMBLE_MARKER,
) -> StructuredDocument:
    """Sanitize and classify the body of *raw*, keeping line order."""
    body = "\n".join(raw.body_lines)
    blocks = classify_lines(sanitize_lines(body, marker))
    return StructuredDocument(
        title=raw.title,
        author=author or DEFAULT_AUTHOR,
        blocks=tuple(blocks),
    )


def compile_document(
    text: str,
    author: str = DEFAULT_AUTHOR,
    *,
    default_title: str = DEFAULT_TITLE,
    marker: str = DEFAULT_PREAMBLE_MARKER,
) -> StructuredDocument:
    """Compile raw model output into a study guide document."""
    raw = split_raw(text, default_title=default_title)
    doc = assemble(raw, author=author, marker=marker)

    if doc.is_empty:
        logger.warning(f"Compiled '{doc.title}' with no content blocks")
    else:
        summary = ", ".join(f"{k}={v}" for k, v in doc.count_by_kind().items())
        logger.info(
            f"Compiled '{doc.title}': {len(raw.body_lines)} line(s) → "
            f"{len(doc.blocks)} block(s) ({summary})"
        )
    return doc
