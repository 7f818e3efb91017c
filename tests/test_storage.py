from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import fitz  # PyMuPDF

from announcer import config
from announcer.storage import image_path, slug_from_title, write_image


def test_slug_sanitization() -> None:
    slug = slug_from_title("Budget / Planner: 2025!")
    assert slug == "budget-planner-2025"


def test_chinese_title_slug_is_ascii() -> None:
    slug = slug_from_title("测试公告")
    assert slug
    assert slug.isascii()
    assert "/" not in slug


def test_symbol_only_title_falls_back_to_hash() -> None:
    slug = slug_from_title("!!!")
    assert len(slug) == 12


class ImagePathTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.original_out_dir = config.OUT_DIR
        config.set_out_dir(Path(self.temp_dir.name) / "out")

    def tearDown(self) -> None:
        config.set_out_dir(self.original_out_dir)
        self.temp_dir.cleanup()

    def test_image_path_uses_out_dir(self) -> None:
        path = image_path("Spring Party", "modern", "medium")
        self.assertEqual(path, Path(self.temp_dir.name) / "out" / "spring-party-modern-medium.png")
        self.assertTrue(path.parent.exists())
        self.assertEqual(image_path("Spring Party", "minimal", "small", fmt="jpeg").suffix, ".jpg")
        with self.assertRaises(ValueError):
            image_path("Spring Party", "modern", "medium", fmt="bmp")


def test_write_image_creates_png() -> None:
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 12, 8), False)
    pix.clear_with(255)
    with tempfile.TemporaryDirectory() as temp_dir:
        path = write_image(pix, Path(temp_dir) / "nested" / "image.png")
        assert path.read_bytes().startswith(b"\x89PNG")
