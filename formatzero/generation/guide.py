"""Turn photos and recordings of class notes into a PDF study guide.

Pipeline for one guide:

    uploads → credit gate → inline encoding → model → compile → consume credit
            → render PDF → session log

The credit is consumed only once the model has answered, so a failed
call costs nothing.  Compilation never fails; an empty reply gives a
guide with the default title and a placeholder paragraph.

Usage (CLI)::

    formatzero generate notes_p1.jpg notes_p2.jpg clase.mp3 \\
        --author ana@example.com --account ana@example.com

    formatzero compile saved_reply.txt --author "Ana"

Usage (programmatic)::

    from formatzero.generation.guide import create_guide
    result = create_guide(files, author="ana@example.com")
    result.pdf_path
"""

import logging
import os
import time
from dataclasses import dataclass

from formatzero.compiler.assembler import DEFAULT_AUTHOR, compile_document
from formatzero.compiler.blocks import StructuredDocument
from formatzero.config import CFG
from formatzero.credits import CreditLedger, OutOfCreditsError, ensure_credit
from formatzero.generation.llm import (
    DEFAULT_MODEL,
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    STUDY_GUIDE_PROMPT,
    TransientServiceError,
    generate_study_text,
)
from formatzero.generation.media import (
    SourceFile,
    encode_files,
    filter_supported,
    read_source_file,
)
from formatzero.generation.session_logger import LOGS_DIR, log_guide_session
from formatzero.rendering.pdf_renderer import render_pdf

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR: str = str(CFG.get("output_dir", "output/guides"))


@dataclass
class GuideResult:
    """Everything produced by one run of :func:`create_guide`."""

    document: StructuredDocument
    raw_text: str
    pdf_path: str
    elapsed_seconds: float
    credits_left: int | None = None
    log_path: str | None = None


def create_guide(
    files: list[SourceFile],
    *,
    author: str = DEFAULT_AUTHOR,
    account: str | None = None,
    ledger: CreditLedger | None = None,
    provider: str | None = None,
    model: str | None = None,
    temperature: float = DEFAULT_TEMPERATURE,
    prompt: str = STUDY_GUIDE_PROMPT,
    output_dir: str = DEFAULT_OUTPUT_DIR,
    logs_dir: str = LOGS_DIR,
) -> GuideResult:
    """Generate, compile and render a study guide from *files*.

    Parameters
    ----------
    files : list[SourceFile]
        Uploads in reading order.  Files that are neither image nor
        audio are skipped.
    author : str
        Name shown under the title.
    account : str, optional
        Account charged for the guide.  Credits are checked and
        consumed only when both *account* and *ledger* are given.
    ledger : CreditLedger, optional
        Where the account balance lives.
    provider, model : str, optional
        LLM provider and model (defaults to config.txt values).
    temperature : float
        Sampling temperature.
    prompt : str
        Instruction sent before the media parts.
    output_dir : str
        Directory for the PDF.
    logs_dir : str
        Directory for the session log.

    Returns
    -------
    GuideResult

    Raises
    ------
    ValueError
        If no file is an image or audio recording.
    OutOfCreditsError
        If the account has no credit left.
    TransientServiceError
        If the model call fails; nothing is charged or written.
    """
    files = filter_supported(files)
    if not files:
        raise ValueError("No image or audio files to process.")

    charge = ledger is not None and bool(account)
    if charge:
        ensure_credit(ledger.balance(account))

    provider = provider or DEFAULT_PROVIDER
    model = model or DEFAULT_MODEL
    t0 = time.time()

    parts = encode_files(files)
    raw_text = generate_study_text(
        parts,
        prompt=prompt,
        model=model,
        temperature=temperature,
        provider=provider,
    )
    document = compile_document(raw_text, author=author)

    credits_left = ledger.consume(account) if charge else None

    pdf_path = render_pdf(document, os.path.join(output_dir, document.filename))
    elapsed = time.time() - t0
    logger.info(f"✅ Guide '{document.title}' ready in {elapsed:.1f}s")

    log_path = log_guide_session(
        document=document,
        raw_text=raw_text,
        files=files,
        account=account,
        provider=provider,
        model=model,
        output_path=pdf_path,
        credits_left=credits_left,
        elapsed_seconds=elapsed,
        logs_dir=logs_dir,
    )

    return GuideResult(
        document=document,
        raw_text=raw_text,
        pdf_path=os.path.abspath(pdf_path),
        elapsed_seconds=elapsed,
        credits_left=credits_left,
        log_path=log_path,
    )


def compile_text_file(
    path: str,
    *,
    author: str = DEFAULT_AUTHOR,
    output_dir: str = DEFAULT_OUTPUT_DIR,
) -> str:
    """Render a saved model reply from *path* without calling the model."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Text file not found: {path}")
    with open(path, encoding="utf-8") as fh:
        raw_text = fh.read()
    document = compile_document(raw_text, author=author)
    out = render_pdf(document, os.path.join(output_dir, document.filename))
    return os.path.abspath(out)


# ── CLI entry point ─────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and build a guide."""
    import argparse

    from rich.console import Console

    from formatzero.config import print_config

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )
    console = Console()

    parser = argparse.ArgumentParser(
        prog="formatzero",
        description="Turn class notes into a PDF study guide",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    gen = subparsers.add_parser(
        "generate", help="Send photos/recordings to the model and render the guide",
    )
    gen.add_argument("files", nargs="+", help="Images or audio recordings, in order")
    gen.add_argument("--author", default=DEFAULT_AUTHOR, help="Name under the title")
    gen.add_argument(
        "--account", default=None, help="Account to charge (default: no credit check)",
    )
    gen.add_argument("--provider", default=None, help="LLM provider (default: config.txt)")
    gen.add_argument("--model", default=None, help="Model name (default: config.txt)")
    gen.add_argument(
        "--temperature",
        type=float,
        default=DEFAULT_TEMPERATURE,
        help=f"Sampling temperature (default: {DEFAULT_TEMPERATURE})",
    )
    gen.add_argument(
        "--output-dir",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Output directory (default: {DEFAULT_OUTPUT_DIR})",
    )

    comp = subparsers.add_parser(
        "compile", help="Render a saved model reply without calling the model",
    )
    comp.add_argument("textfile", help="UTF-8 text file with the model reply")
    comp.add_argument("--author", default=DEFAULT_AUTHOR, help="Name under the title")
    comp.add_argument(
        "--output-dir",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Output directory (default: {DEFAULT_OUTPUT_DIR})",
    )

    args = parser.parse_args(argv)

    if args.command == "compile":
        out = compile_text_file(
            args.textfile, author=args.author, output_dir=args.output_dir,
        )
        console.print(f"\n✅ Written to: {out}")
        return

    print_config()
    files = [read_source_file(p) for p in args.files]
    ledger = CreditLedger() if args.account else None
    try:
        result = create_guide(
            files,
            author=args.author,
            account=args.account,
            ledger=ledger,
            provider=args.provider,
            model=args.model,
            temperature=args.temperature,
            output_dir=args.output_dir,
        )
    except (OutOfCreditsError, TransientServiceError) as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise SystemExit(1) from exc
    console.print(f"\n✅ Written to: {result.pdf_path}")
    if result.credits_left is not None:
        console.print(f"   Credits left: {result.credits_left}")


if __name__ == "__main__":
    main()
