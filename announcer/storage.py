from __future__ import annotations

import hashlib
import re
from pathlib import Path

import fitz  # PyMuPDF
from slugify import slugify

from . import config
from .pipeline.render import encode_image


EXTENSIONS = {
    "png": "png",
    "jpg": "jpg",
    "jpeg": "jpg",
}


def slug_from_title(title: str) -> str:
    slug = slugify(title)
    slug = re.sub(r"[^a-z0-9-]+", "-", slug.lower()).strip("-")
    if not slug:
        slug = hashlib.md5(title.encode("utf-8")).hexdigest()[:12]
    if ".." in slug or "/" in slug or "\\" in slug:
        raise ValueError("Invalid slug generated from title")
    return slug


def image_path(
    title: str,
    style_id: str,
    size_id: str,
    base_dir: Path | None = None,
    fmt: str = "png",
) -> Path:
    ext = EXTENSIONS.get(fmt.lower())
    if ext is None:
        raise ValueError(f"Unsupported image format: {fmt}")
    root = base_dir or config.OUT_DIR
    root.mkdir(parents=True, exist_ok=True)
    return root / f"{slug_from_title(title)}-{style_id}-{size_id}.{ext}"


def write_image(pixmap: fitz.Pixmap, path: Path, fmt: str | None = None) -> Path:
    fmt = fmt or path.suffix.lstrip(".") or "png"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_image(pixmap, fmt))
    return path
