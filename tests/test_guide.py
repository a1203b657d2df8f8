"""Tests for formatzero/generation/guide.py.

The model call is mocked; compilation and PDF rendering run for real.

Run with:
    pytest tests/test_guide.py -v
"""

import os
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from formatzero.credits import CreditLedger, OutOfCreditsError
from formatzero.generation.guide import compile_text_file, create_guide, main
from formatzero.generation.llm import TransientServiceError
from formatzero.generation.media import SourceFile

MODEL_REPLY = (
    "Fotosíntesis\n"
    "¡Claro! Aquí tienes tu guía.\n"
    "SECCIÓN: Introducción\n"
    "CONTEXTO: Sirve para entender la energía.\n"
    "La planta usa luz.\n"
    "PREGUNTA: ¿Qué gas libera?\n"
)


def _files() -> list[SourceFile]:
    return [
        SourceFile("p1.jpg", "image/jpeg", b"page one"),
        SourceFile("p2.png", "image/png", b"page two"),
    ]


class _GuideTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.output_dir = os.path.join(self.tmpdir, "guides")
        self.logs_dir = os.path.join(self.tmpdir, "logs")
        self.ledger = CreditLedger(
            os.path.join(self.tmpdir, "credits.sqlite3"), initial_credits=1,
        )

    def _create(self, files=None, **kwargs):
        kwargs.setdefault("output_dir", self.output_dir)
        kwargs.setdefault("logs_dir", self.logs_dir)
        return create_guide(_files() if files is None else files, **kwargs)


class TestCreateGuide(_GuideTestCase):

    @patch("formatzero.generation.guide.generate_study_text", return_value=MODEL_REPLY)
    def test_writes_pdf_named_after_title(self, mock_generate):
        result = self._create(author="Ana")
        self.assertEqual(os.path.basename(result.pdf_path), "Fotosíntesis.pdf")
        self.assertTrue(os.path.isfile(result.pdf_path))
        self.assertEqual(result.document.title, "Fotosíntesis")
        self.assertEqual(result.document.author, "Ana")
        self.assertEqual(len(result.document.blocks), 4)
        self.assertTrue(os.path.isfile(result.log_path))

    @patch("formatzero.generation.guide.generate_study_text", return_value=MODEL_REPLY)
    def test_parts_sent_in_upload_order(self, mock_generate):
        self._create()
        (parts,), _ = mock_generate.call_args
        self.assertEqual([p.mime_type for p in parts], ["image/jpeg", "image/png"])

    @patch("formatzero.generation.guide.generate_study_text", return_value=MODEL_REPLY)
    def test_unsupported_files_are_skipped(self, mock_generate):
        files = _files() + [SourceFile("notes.pdf", "application/pdf", b"x")]
        self._create(files)
        (parts,), _ = mock_generate.call_args
        self.assertEqual(len(parts), 2)

    @patch("formatzero.generation.guide.generate_study_text")
    def test_no_supported_files_raises(self, mock_generate):
        with self.assertRaises(ValueError):
            self._create([SourceFile("a.txt", "text/plain", b"x")])
        mock_generate.assert_not_called()

    @patch("formatzero.generation.guide.generate_study_text", return_value="")
    def test_empty_reply_gives_placeholder_guide(self, mock_generate):
        result = self._create()
        self.assertTrue(result.document.is_empty)
        self.assertEqual(os.path.basename(result.pdf_path), "Guía_de_Aprendizaje.pdf")


class TestCreateGuideCredits(_GuideTestCase):

    @patch("formatzero.generation.guide.generate_study_text", return_value=MODEL_REPLY)
    def test_consumes_one_credit(self, mock_generate):
        result = self._create(account="ana", ledger=self.ledger)
        self.assertEqual(result.credits_left, 0)
        self.assertEqual(self.ledger.balance("ana"), 0)

    @patch("formatzero.generation.guide.generate_study_text", return_value=MODEL_REPLY)
    def test_out_of_credits_blocks_generation(self, mock_generate):
        self._create(account="ana", ledger=self.ledger)
        with self.assertRaises(OutOfCreditsError):
            self._create(account="ana", ledger=self.ledger)
        self.assertEqual(mock_generate.call_count, 1)

    @patch(
        "formatzero.generation.guide.generate_study_text",
        side_effect=TransientServiceError(detail="503"),
    )
    def test_failed_generation_is_free(self, mock_generate):
        with self.assertRaises(TransientServiceError):
            self._create(account="ana", ledger=self.ledger)
        self.assertEqual(self.ledger.balance("ana"), 1)
        self.assertFalse(os.path.exists(self.output_dir))

    @patch("formatzero.generation.guide.generate_study_text", return_value=MODEL_REPLY)
    def test_no_ledger_means_no_charge(self, mock_generate):
        result = self._create(account="ana")
        self.assertIsNone(result.credits_left)


class TestCompileTextFile(_GuideTestCase):

    def test_compiles_saved_reply(self):
        path = os.path.join(self.tmpdir, "reply.txt")
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(MODEL_REPLY)
        out = compile_text_file(path, author="Ana", output_dir=self.output_dir)
        self.assertTrue(out.endswith("Fotosíntesis.pdf"))
        self.assertTrue(os.path.isfile(out))

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            compile_text_file("/nonexistent/reply.txt")


# ── CLI tests ───────────────────────────────────────────────────────


class TestCLI(_GuideTestCase):

    def test_compile_command(self):
        path = os.path.join(self.tmpdir, "reply.txt")
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(MODEL_REPLY)
        main(["compile", path, "--output-dir", self.output_dir])
        self.assertTrue(os.path.isfile(os.path.join(self.output_dir, "Fotosíntesis.pdf")))

    @patch("formatzero.generation.guide.create_guide")
    def test_generate_transient_error_exits(self, mock_create):
        mock_create.side_effect = TransientServiceError()
        image = os.path.join(self.tmpdir, "p1.png")
        with open(image, "wb") as fh:
            fh.write(b"png")
        with self.assertRaises(SystemExit) as ctx:
            main(["generate", image, "--output-dir", self.output_dir])
        self.assertEqual(ctx.exception.code, 1)

    @patch("formatzero.generation.guide.create_guide")
    def test_generate_passes_files_in_order(self, mock_create):
        paths = []
        for name in ("b.png", "a.jpg"):
            p = os.path.join(self.tmpdir, name)
            with open(p, "wb") as fh:
                fh.write(name.encode())
            paths.append(p)
        main(["generate", *paths, "--author", "Ana", "--output-dir", self.output_dir])
        (files,), kwargs = mock_create.call_args
        self.assertEqual([f.name for f in files], ["b.png", "a.jpg"])
        self.assertEqual(kwargs["author"], "Ana")
        self.assertIsNone(kwargs["ledger"])


if __name__ == "__main__":
    unittest.main()
