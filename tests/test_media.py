"""Tests for formatzero/generation/media.py."""

import base64
import os
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from formatzero.generation.media import (
    ACCEPTED_EXTENSIONS,
    MediaPart,
    SourceFile,
    encode_file,
    encode_files,
    filter_supported,
    guess_mime_type,
    is_supported,
    read_source_file,
)


def _files(n: int) -> list[SourceFile]:
    return [
        SourceFile(name=f"page_{i}.png", mime_type="image/png", content=f"img{i}".encode())
        for i in range(n)
    ]


class TestMimeTypes(unittest.TestCase):

    def test_supported_types(self):
        self.assertTrue(is_supported("image/jpeg"))
        self.assertTrue(is_supported("audio/mpeg"))
        self.assertFalse(is_supported("application/pdf"))
        self.assertFalse(is_supported("text/plain"))

    def test_guess_accepted_extensions(self):
        self.assertEqual(guess_mime_type("foto.JPG"), "image/jpeg")
        self.assertEqual(guess_mime_type("clase.m4a"), "audio/mp4")
        self.assertEqual(guess_mime_type("clase.ogg"), "audio/ogg")

    def test_guess_unknown_extension(self):
        self.assertEqual(guess_mime_type("archivo.zzz"), "application/octet-stream")

    def test_accepted_extensions(self):
        for ext in (".png", ".jpeg", ".jpg", ".webp", ".mp3", ".wav", ".m4a", ".ogg"):
            self.assertIn(ext, ACCEPTED_EXTENSIONS)


class TestFilterSupported(unittest.TestCase):

    def test_drops_unsupported_and_keeps_order(self):
        files = [
            SourceFile("b.png", "image/png", b"1"),
            SourceFile("notes.pdf", "application/pdf", b"2"),
            SourceFile("a.mp3", "audio/mpeg", b"3"),
        ]
        kept = filter_supported(files)
        self.assertEqual([f.name for f in kept], ["b.png", "a.mp3"])

    def test_empty(self):
        self.assertEqual(filter_supported([]), [])


class TestEncode(unittest.TestCase):

    def test_encode_file(self):
        part = encode_file(SourceFile("x.png", "image/png", b"hello"))
        self.assertEqual(part, MediaPart(data=base64.b64encode(b"hello").decode(), mime_type="image/png"))
        self.assertFalse(part.is_audio)

    def test_audio_part(self):
        part = encode_file(SourceFile("x.wav", "audio/wav", b"\x00\x01"))
        self.assertTrue(part.is_audio)

    def test_encode_files_preserves_order(self):
        files = _files(25)
        parts = encode_files(files, max_workers=8)
        decoded = [base64.b64decode(p.data) for p in parts]
        self.assertEqual(decoded, [f.content for f in files])

    def test_encode_files_single_worker(self):
        parts = encode_files(_files(3), max_workers=0)
        self.assertEqual(len(parts), 3)

    def test_encode_no_files(self):
        self.assertEqual(encode_files([]), [])


class TestReadSourceFile(unittest.TestCase):

    def test_reads_content_and_type(self):
        fd, path = tempfile.mkstemp(suffix=".webp")
        with os.fdopen(fd, "wb") as fh:
            fh.write(b"RIFF")
        self.addCleanup(os.unlink, path)
        source = read_source_file(path)
        self.assertEqual(source.content, b"RIFF")
        self.assertEqual(source.mime_type, "image/webp")
        self.assertEqual(source.name, os.path.basename(path))

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            read_source_file("/nonexistent/page.png")


if __name__ == "__main__":
    unittest.main()
