"""Clean raw model output before it is classified.

Two passes, both pure:

* **Markup** – every ``*``, ``#`` and ``_`` is deleted.  The prompt
  forbids Markdown, but models still emit ``**bold**`` and ``## ``
  headings, and those markers would otherwise leak into the PDF.
* **Preamble** – chatbot chatter such as ``¡Claro! Aquí tienes…`` or
  ``(He analizado tus fotos)`` is dropped line by line.  A line goes
  when its trimmed form starts with ``!``/``¡`` or ``(``, or when it
  contains the configured marker word (``preamble_marker``).

Blank lines are dropped as well, so :func:`sanitize_lines` returns only
lines that carry content.  Applying :func:`sanitize` twice gives the
same result as applying it once.
"""

import re

from formatzero.config import CFG

DEFAULT_PREAMBLE_MARKER: str = str(CFG.get("preamble_marker", "analizado"))

_MARKUP_RE = re.compile(r"[*#_]")

# Opening characters of a line that is chatter, not content.
_PREAMBLE_PREFIXES = ("!", "¡", "(")


def strip_markup(text: str) -> str:
    """Remove Markdown emphasis markers (``*``, ``#``, ``_``) from *text*."""
    return _MARKUP_RE.sub("", text)


def is_preamble(line: str, marker: str = DEFAULT_PREAMBLE_MARKER) -> bool:
    """Return True if *line* looks like conversational filler."""
    stripped = line.strip()
    if stripped.startswith(_PREAMBLE_PREFIXES):
        return True
    return bool(marker) and marker.lower() in stripped.lower()


def sanitize_lines(
    text: str,
    marker: str = DEFAULT_PREAMBLE_MARKER,
) -> list[str]:
    """Return the trimmed, non-blank, non-preamble lines of *text*.

    Markup is stripped before the preamble check, so ``**¡Hola!**``
    is recognised as chatter.  Line order is preserved.
    """
    lines: list[str] = []
    for raw_line in strip_markup(text).splitlines():
        line = raw_line.strip()
        if not line or is_preamble(line, marker):
            continue
        lines.append(line)
    return lines


def sanitize(text: str, marker: str = DEFAULT_PREAMBLE_MARKER) -> str:
    """Sanitize *text* and return the surviving lines joined by ``\\n``."""
    return "\n".join(sanitize_lines(text, marker))
