from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from PIL import Image

from mediacache.models import AssetKind

# Supported still image formats
IMG_EXTS = {
    ".jpg", ".jpeg", ".png", ".bmp",
    ".webp", ".tif", ".tiff", ".gif",
}

# Supported video formats (listed, never decoded)
VIDEO_EXTS = {
    ".mp4", ".mov", ".m4v", ".mkv",
    ".avi", ".webm", ".3gp",
}

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".bmp": "image/bmp",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
    ".3gp": "video/3gpp",
}


# ----------------------------------------------------------------------
# FILE ITERATOR
# ----------------------------------------------------------------------
def media_kind(path: Path) -> Optional[AssetKind]:
    """Classify a file by extension, None when unsupported."""
    ext = path.suffix.lower()
    if ext in IMG_EXTS:
        return AssetKind.IMAGE
    if ext in VIDEO_EXTS:
        return AssetKind.VIDEO
    return None


def iter_media(root: str) -> Iterable[Path]:
    """Yield all supported image and video files under root."""
    p = Path(root).expanduser()

    for dirpath, dirnames, filenames in os.walk(p):
        # Hidden folders hold app caches and trash on most devices
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        for fn in filenames:
            if fn.startswith("."):
                continue
            candidate = Path(dirpath) / fn
            if media_kind(candidate) is not None:
                yield candidate


def content_type(path: str) -> str:
    """Get content type from file extension."""
    return CONTENT_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


# ----------------------------------------------------------------------
# IMAGE LOADER
# ----------------------------------------------------------------------
def image_size(path: Path) -> Tuple[int, int]:
    """Read pixel dimensions from the file header, (0, 0) if unreadable."""
    try:
        with Image.open(str(path)) as img:
            return img.size
    except Exception:
        return 0, 0


# ----------------------------------------------------------------------
# INDEX
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class MediaEntry:
    """One media file found under the index root."""
    id: int
    path: str
    name: str
    kind: AssetKind
    mime_type: str
    size: int
    date_added: int
    date_modified: int
    width: int
    height: int
    album: str  # directory relative to the root, "" for the root itself


def collect_entry(path: Path, root: Path, entry_id: int) -> MediaEntry:
    """Stat a file and read its header into a MediaEntry."""
    st = path.stat()
    kind = media_kind(path)
    width, height = image_size(path) if kind is AssetKind.IMAGE else (0, 0)
    album = path.parent.relative_to(root).as_posix()
    return MediaEntry(
        id=entry_id,
        path=str(path),
        name=path.name,
        kind=kind,
        mime_type=content_type(path.name),
        size=st.st_size,
        date_added=int(min(st.st_ctime, st.st_mtime)),
        date_modified=int(st.st_mtime),
        width=width,
        height=height,
        album="" if album == "." else album,
    )


class MediaIndex:
    """
    In-memory listing of every media file under a directory.

    IDs are assigned 1..n in path order, so they stay stable between scans
    of an unchanged tree. entries are ordered newest first, the way the
    device media store reports them.
    """

    def __init__(self, root: str):
        self.root = Path(root).expanduser()
        self._entries: Optional[List[MediaEntry]] = None
        self._by_id: Dict[int, MediaEntry] = {}

    def scan(self) -> List[MediaEntry]:
        if not self.root.is_dir():
            raise FileNotFoundError(f"Media root not found: {self.root}")

        paths = sorted(iter_media(str(self.root)))
        entries = []
        for idx, p in enumerate(paths, start=1):
            try:
                entries.append(collect_entry(p, self.root, idx))
            except OSError:
                # File vanished between walk and stat
                continue

        entries.sort(key=lambda e: (-e.date_added, e.path))
        self._entries = entries
        self._by_id = {e.id: e for e in entries}
        return entries

    @property
    def entries(self) -> List[MediaEntry]:
        if self._entries is None:
            return self.scan()
        return self._entries

    def refresh(self):
        self._entries = None
        self._by_id = {}

    def get(self, entry_id: int) -> Optional[MediaEntry]:
        if self._entries is None:
            self.scan()
        return self._by_id.get(entry_id)

    def albums(self) -> Dict[str, List[MediaEntry]]:
        """Group entries by directory, keeping the newest-first order."""
        grouped: Dict[str, List[MediaEntry]] = {}
        for e in self.entries:
            grouped.setdefault(e.album, []).append(e)
        return grouped
