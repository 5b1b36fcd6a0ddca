"""
Unit tests for thumbnail rendering.
"""
import unittest
import io
import os
import tempfile
import shutil

from PIL import Image

from mediacache.gallery import calculate_sample_size, render_square_thumbnail, render_thumbnail

from fakes import make_media_tree


class TestSampleSize(unittest.TestCase):
    """Test the power-of-two downsample factor."""

    def test_large_photo(self):
        self.assertEqual(calculate_sample_size(4000, 3000, 150, 150), 16)

    def test_small_photo_is_not_sampled(self):
        self.assertEqual(calculate_sample_size(100, 100, 150, 150), 1)

    def test_exact_double(self):
        """Test half size equal to the request still halves."""
        self.assertEqual(calculate_sample_size(300, 300, 150, 150), 2)

    def test_one_side_too_small(self):
        self.assertEqual(calculate_sample_size(4000, 200, 150, 150), 1)

    def test_decoded_image_stays_at_least_requested(self):
        for w, h in ((4000, 3000), (1920, 1080), (640, 480), (151, 151)):
            sample = calculate_sample_size(w, h, 150, 150)
            self.assertGreaterEqual(w // sample, 150)
            self.assertGreaterEqual(h // sample, 150)


class TestRenderThumbnail(unittest.TestCase):
    """Test JPEG thumbnail rendering from files on disk."""

    def setUp(self):
        """Set up test fixtures."""
        self.root = tempfile.mkdtemp()
        make_media_tree(self.root)

    def tearDown(self):
        """Clean up after tests."""
        shutil.rmtree(self.root, ignore_errors=True)

    def _open(self, data):
        img = Image.open(io.BytesIO(data))
        self.assertEqual(img.format, "JPEG")
        return img

    def test_square_thumbnail_is_exact(self):
        """Test the square thumbnail ignores the aspect ratio."""
        data = render_square_thumbnail(os.path.join(self.root, "a.jpg"), 150)
        self.assertEqual(self._open(data).size, (150, 150))

    def test_square_thumbnail_from_png(self):
        data = render_square_thumbnail(os.path.join(self.root, "b.png"), 64)
        self.assertEqual(self._open(data).size, (64, 64))

    def test_square_thumbnail_upscales_small_source(self):
        data = render_square_thumbnail(os.path.join(self.root, "b.png"), 200)
        self.assertEqual(self._open(data).size, (200, 200))

    def test_fitted_thumbnail_keeps_aspect(self):
        """Test the fitted thumbnail stays inside the box."""
        img = self._open(render_thumbnail(os.path.join(self.root, "a.jpg"), 150, 150))
        self.assertEqual(img.size[0], 150)
        self.assertLess(img.size[1], 150)

    def test_missing_file_raises(self):
        with self.assertRaises(Exception) as ctx:
            render_square_thumbnail(os.path.join(self.root, "missing.jpg"), 150)
        self.assertIn("Thumbnail generation failed", str(ctx.exception))

    def test_corrupt_file_raises(self):
        path = os.path.join(self.root, "broken.jpg")
        with open(path, "wb") as f:
            f.write(b"definitely not a jpeg")
        with self.assertRaises(Exception):
            render_thumbnail(path, 150, 150)


if __name__ == '__main__':
    unittest.main()
