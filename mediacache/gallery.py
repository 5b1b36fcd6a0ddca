from __future__ import annotations
import io
from pathlib import Path
from typing import Tuple

from PIL import Image

from mediacache.config import JPEG_QUALITY


def calculate_sample_size(width: int, height: int, req_width: int, req_height: int) -> int:
    """
    Largest power-of-two decode factor that keeps the decoded image at least
    as big as the requested box.
    """
    sample = 1
    if height > req_height or width > req_width:
        half_height = height // 2
        half_width = width // 2
        while half_height // sample >= req_height and half_width // sample >= req_width:
            sample *= 2
    return sample


def _decode_sampled(path: Path, req_size: Tuple[int, int]) -> Image.Image:
    """Decode an image already shrunk by calculate_sample_size()."""
    img = Image.open(str(path))
    src_w, src_h = img.size
    factor = calculate_sample_size(src_w, src_h, req_size[0], req_size[1])
    if factor > 1:
        target = (max(1, src_w // factor), max(1, src_h // factor))
        # JPEG decoders scale down by up to 1/8 on their own
        img.draft("RGB", target)
        residual = img.size[0] // target[0]
        img = img.convert("RGB")
        if residual > 1:
            img = img.reduce(residual)
        return img
    return img.convert("RGB")


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    img.save(buf, "JPEG", quality=quality)
    return buf.getvalue()


def render_square_thumbnail(src_path: str, size: int, quality: int = JPEG_QUALITY) -> bytes:
    """
    Exact size x size JPEG thumbnail, as the native channel returns them.
    Raises on failure so the caller can tag the error.
    """
    try:
        img = _decode_sampled(Path(src_path), (size, size))
        img = img.resize((size, size), Image.Resampling.BILINEAR)
        return _encode_jpeg(img, quality)
    except Exception as e:
        raise Exception(f"Thumbnail generation failed for {src_path}: {str(e)}") from e


def render_thumbnail(src_path: str, width: int, height: int, quality: int = JPEG_QUALITY) -> bytes:
    """
    Aspect-preserving JPEG thumbnail that fits inside width x height.
    Raises on failure.
    """
    try:
        img = _decode_sampled(Path(src_path), (width, height))
        img.thumbnail((width, height))
        return _encode_jpeg(img, quality)
    except Exception as e:
        raise Exception(f"Thumbnail generation failed for {src_path}: {str(e)}") from e
