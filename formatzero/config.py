"""Load FormatZero settings from config.txt.

Reads a simple ``key = value`` text file from the project root.
Blank lines and lines starting with ``#`` are ignored.
Integer-looking values are cast to ``int`` and true/false words to
``bool`` automatically.

Usage::

    from formatzero.config import CFG

    provider = CFG["llm_provider"]      # str
    credits  = CFG["initial_credits"]   # int

If config.txt is missing, the defaults below are used so the
compiler, the CLI and the web UI still work.
"""

import logging
import os

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)

# ── API keys for the model providers ────────────────────────────────
load_dotenv()

_console = Console()

# ── Defaults ────────────────────────────────────────────────────────
DEFAULTS: dict[str, str | int | bool] = {
    "llm_provider": "google",
    "llm_model": "gemini-2.5-flash",
    "temperature": "0.4",
    "default_title": "Guía de Aprendizaje",
    "default_author": "Estudiante",
    "preamble_marker": "analizado",
    "footer_text": "FormatZero — Neurociencia aplicada al estudio",
    "output_dir": "output/guides",
    "credits_db": "credits.sqlite3",
    "initial_credits": 3,
    "purchase_url": "",
    "max_workers": 4,
}

CONFIG_PATH = os.path.join(os.path.dirname(__file__), os.pardir, "config.txt")


# Values recognised as boolean true / false (case-insensitive).
_BOOL_TRUE = frozenset({"true", "yes", "on"})
_BOOL_FALSE = frozenset({"false", "no", "off"})


def load_config(path: str = CONFIG_PATH) -> dict[str, str | int | bool]:
    """Parse *path* and return a merged dict of defaults + overrides.

    File format (one pair per line)::

        # comment
        llm_provider = google
        llm_model = gemini-2.5-flash
        initial_credits = 3

    Boolean values are recognised as true/yes/on and false/no/off
    (case-insensitive).  Digits-only values become ``int``; anything
    else (including ``0.4``) stays a string.

    Returns
    -------
    dict[str, str | int | bool]
        Merged configuration.  Keys not present in the file keep
        their default values.
    """
    cfg: dict[str, str | int | bool] = dict(DEFAULTS)

    resolved = os.path.normpath(path)
    if not os.path.isfile(resolved):
        logger.warning(
            f"Config file not found at {resolved} — using defaults"
        )
        return cfg

    with open(resolved, encoding="utf-8") as fh:
        for lineno, raw_line in enumerate(fh, start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                logger.warning(
                    f"config.txt:{lineno}: skipping malformed line: {line!r}"
                )
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip()

            if value.lower() in _BOOL_TRUE:
                cfg[key] = True
                continue
            if value.lower() in _BOOL_FALSE:
                cfg[key] = False
                continue

            if value.isdigit():
                value = int(value)

            cfg[key] = value

    logger.info(f"Loaded config from {resolved}: {cfg}")
    return cfg


# Read once at import and shared by every module.
CFG: dict[str, str | int | bool] = load_config()


def print_config(cfg: dict[str, str | int | bool] | None = None) -> None:
    """Pretty-print the active configuration using a rich table."""
    cfg = cfg if cfg is not None else CFG
    table = Table(
        title="config.txt",
        title_style="bold yellow",
        border_style="yellow",
        show_header=True,
        header_style="bold",
        padding=(0, 2),
    )
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white bold")
    for key, value in cfg.items():
        table.add_row(str(key), str(value))
    _console.print(table)


def config_as_text(cfg: dict[str, str | int | bool] | None = None) -> str:
    """Return the active configuration as a plain-text block for log files."""
    cfg = cfg if cfg is not None else CFG
    lines = [f"{k} = {v}" for k, v in cfg.items()]
    return "\n".join(lines)
