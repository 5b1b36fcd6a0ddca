"""
Tests for the mediacache command line.
"""
import unittest
import io
import os
import tempfile
import shutil

from PIL import Image
from typer.testing import CliRunner

from cli.main import app

from fakes import make_media_tree


class TestCli(unittest.TestCase):
    """Test the typer commands against a media folder."""

    def setUp(self):
        """Set up test fixtures."""
        self.runner = CliRunner()
        self.root = tempfile.mkdtemp()
        make_media_tree(self.root)

    def tearDown(self):
        """Clean up after tests."""
        shutil.rmtree(self.root, ignore_errors=True)

    def invoke(self, *args):
        return self.runner.invoke(app, list(args))

    def test_scan(self):
        result = self.invoke("scan", self.root)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("3 photos, 1 videos in 2 albums", result.output)

    def test_scan_missing_folder(self):
        result = self.invoke("scan", os.path.join(self.root, "nope"))
        self.assertEqual(result.exit_code, 1)

    def test_albums(self):
        result = self.invoke("albums", self.root)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Recent", result.output)
        self.assertIn("Camera", result.output)

    def test_preload(self):
        result = self.invoke("preload", self.root)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("photos_loaded", result.output)
        self.assertIn("native_available", result.output)

    def test_preload_native(self):
        result = self.invoke("preload", self.root, "--native")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("native_photos", result.output)

    def test_thumb(self):
        out = os.path.join(self.root, "out", "thumb.jpg")
        result = self.invoke("thumb", self.root, "3", out, "--size", "64")

        self.assertEqual(result.exit_code, 0, result.output)
        with open(out, "rb") as f:
            img = Image.open(io.BytesIO(f.read()))
        self.assertEqual(img.size[0], 64)

    def test_thumb_native(self):
        out = os.path.join(self.root, "native.jpg")
        result = self.invoke("thumb", self.root, "1", out, "--size", "64", "--native")

        self.assertEqual(result.exit_code, 0, result.output)
        with open(out, "rb") as f:
            self.assertEqual(Image.open(io.BytesIO(f.read())).size, (64, 64))

    def test_thumb_unknown_asset(self):
        out = os.path.join(self.root, "none.jpg")
        result = self.invoke("thumb", self.root, "999", out)
        self.assertEqual(result.exit_code, 1)
        self.assertFalse(os.path.exists(out))


if __name__ == '__main__':
    unittest.main()
