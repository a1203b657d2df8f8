"""Log every study-guide generation to a timestamped file in logs/.

Each call to :func:`log_guide_session` produces a single ``.log`` file
containing:

* Active config.txt settings
* Timestamp, account, provider and model
* The uploaded files (name, type, size) in request order
* The raw text returned by the model
* The compiled blocks (kind and text), in document order
* The written PDF path, remaining credits and timing

Files are named ``YYYYMMDD_HHMMSS_guide.log`` so they sort
chronologically.
"""

import logging
import os
from datetime import datetime

from formatzero.compiler.blocks import StructuredDocument
from formatzero.config import config_as_text
from formatzero.generation.media import SourceFile

logger = logging.getLogger(__name__)

LOGS_DIR = os.path.join("logs")


def _ensure_logs_dir(logs_dir: str = LOGS_DIR) -> None:
    """Create the logs directory if it doesn't exist."""
    os.makedirs(logs_dir, exist_ok=True)


def log_guide_session(
    *,
    document: StructuredDocument,
    raw_text: str,
    files: list[SourceFile] | None = None,
    account: str | None = None,
    provider: str | None = None,
    model: str | None = None,
    output_path: str | None = None,
    credits_left: int | None = None,
    elapsed_seconds: float | None = None,
    logs_dir: str = LOGS_DIR,
) -> str:
    """Write a complete generation session to a log file.

    Parameters
    ----------
    document : StructuredDocument
        The compiled guide.
    raw_text : str
        The model's reply, before sanitizing.
    files : list[SourceFile] | None
        The uploads that were sent, in request order.
    account : str | None
        Account that paid for the guide.
    provider, model : str | None
        LLM provider and model name.
    output_path : str | None
        Path to the rendered PDF.
    credits_left : int | None
        Balance after the credit was consumed.
    elapsed_seconds : float | None
        Wall-clock time for the whole run.
    logs_dir : str
        Directory for log files.

    Returns
    -------
    str
        Path to the log file.
    """
    _ensure_logs_dir(logs_dir)

    now = datetime.now()
    filename = now.strftime("%Y%m%d_%H%M%S_guide.log")
    filepath = os.path.join(logs_dir, filename)

    separator = "─" * 72

    with open(filepath, "w", encoding="utf-8") as fh:
        # ── Config ──────────────────────────────────────────────────
        fh.write("CONFIG\n")
        fh.write(f"{separator}\n")
        fh.write(f"{config_as_text()}\n")
        fh.write(f"{separator}\n\n")

        # ── Parameters ──────────────────────────────────────────────
        fh.write("GUIDE SESSION\n")
        fh.write(f"{separator}\n")
        fh.write(f"Timestamp:  {now.isoformat()}\n")
        fh.write(f"Title:      {document.title}\n")
        fh.write(f"Author:     {document.author}\n")
        if account:
            fh.write(f"Account:    {account}\n")
        if provider:
            fh.write(f"Provider:   {provider}\n")
        if model:
            fh.write(f"Model:      {model}\n")
        if output_path:
            fh.write(f"Output:     {output_path}\n")
        if credits_left is not None:
            fh.write(f"Credits:    {credits_left} left\n")
        if elapsed_seconds is not None:
            mins, secs = divmod(int(elapsed_seconds), 60)
            fh.write(f"Elapsed:    {elapsed_seconds:.1f}s ({mins:02d}:{secs:02d})\n")
        fh.write(f"Blocks:     {len(document.blocks)}\n")
        fh.write(f"{separator}\n\n")

        # ── Uploads ─────────────────────────────────────────────────
        if files:
            fh.write("FILES\n")
            fh.write(f"{separator}\n")
            for i, f in enumerate(files, 1):
                fh.write(f"[{i}] {f.name}  ({f.mime_type}, {len(f.content):,} bytes)\n")
            fh.write(f"{separator}\n\n")

        # ── Model output ────────────────────────────────────────────
        fh.write("MODEL OUTPUT\n")
        fh.write(f"{separator}\n")
        fh.write(f"{raw_text}\n")
        fh.write(f"{separator}\n\n")

        # ── Compiled blocks ─────────────────────────────────────────
        fh.write("BLOCKS\n")
        fh.write(f"{separator}\n")
        for i, block in enumerate(document.blocks, 1):
            fh.write(f"{i:>3}. {block.kind:<10} {block.text}\n")
        fh.write(f"{separator}\n")

    logger.info(f"Guide session logged to {filepath}")
    return filepath
