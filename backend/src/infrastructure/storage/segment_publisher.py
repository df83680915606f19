"""On-disk HLS layout for published camera streams."""

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

MANIFEST_NAME = "index.m3u8"
SEGMENT_TEMPLATE = "segment_%03d.ts"

_SEGMENT_NAME = re.compile(r"^segment_(\d+)\.ts$")
_SAFE_CAMERA_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")
_MEDIA_SEQUENCE = "#EXT-X-MEDIA-SEQUENCE:"


def segment_number(name: str) -> Optional[int]:
    """Sequence number encoded in a segment file name, or None."""
    match = _SEGMENT_NAME.match(name)
    return int(match.group(1)) if match else None


@dataclass
class Playlist:
    """Minimal media playlist model: header, (tags, uri) entries, trailer."""
    header: List[str] = field(default_factory=list)
    entries: List[tuple] = field(default_factory=list)
    trailer: List[str] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "Playlist":
        playlist = cls()
        pending: List[str] = []
        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue
            if line.startswith("#"):
                if line.startswith("#EXT-X-ENDLIST"):
                    playlist.trailer.append(line)
                elif not playlist.entries and not line.startswith("#EXTINF"):
                    # Header tags until the first segment tag
                    if pending:
                        pending.append(line)
                    else:
                        playlist.header.append(line)
                else:
                    pending.append(line)
                continue
            playlist.entries.append((pending, line))
            pending = []
        return playlist

    @property
    def media_sequence(self) -> int:
        for line in self.header:
            if line.startswith(_MEDIA_SEQUENCE):
                try:
                    return int(line[len(_MEDIA_SEQUENCE):])
                except ValueError:
                    return 0
        return 0

    def render(self, entries: List[tuple], media_sequence: int) -> str:
        header = [line for line in self.header if not line.startswith(_MEDIA_SEQUENCE)]
        header.append(f"{_MEDIA_SEQUENCE}{media_sequence}")
        lines = list(header)
        for tags, uri in entries:
            lines.extend(tags)
            lines.append(uri)
        lines.extend(self.trailer)
        return "\n".join(lines) + "\n"


class SegmentPublisher:
    """
    Layout convention for published streams.

    One directory per camera under ``base_dir`` holding ``index.m3u8`` and
    ``segment_NNN.ts`` files. The encoder writes the files; the publisher
    only knows where they live, serves a manifest that references segments
    physically present on disk, and enforces the sliding window.
    """

    def __init__(self, base_dir: str, url_prefix: str = "/api/media/live", window_size: int = 5):
        """
        Args:
            base_dir: Root directory for all camera outputs
            url_prefix: HTTP prefix the media routes are mounted under
            window_size: Max segments referenced / kept on disk (N)
        """
        if window_size < 1:
            raise ValueError("window_size must be >= 1")
        self.base_dir = Path(base_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.window_size = window_size

    # ---- layout --------------------------------------------------------

    def camera_dir(self, camera_id: str) -> Path:
        if not _SAFE_CAMERA_ID.match(camera_id):
            raise ValueError(f"Unsafe camera id for output path: {camera_id!r}")
        return self.base_dir / camera_id

    def manifest_path(self, camera_id: str) -> Path:
        return self.camera_dir(camera_id) / MANIFEST_NAME

    def segment_template(self, camera_id: str) -> Path:
        return self.camera_dir(camera_id) / SEGMENT_TEMPLATE

    def segment_path(self, camera_id: str, name: str) -> Optional[Path]:
        """Path of an existing segment, or None for unknown / invalid names."""
        if segment_number(name) is None:
            return None
        path = self.camera_dir(camera_id) / name
        return path if path.is_file() else None

    def publish_path(self, camera_id: str) -> str:
        """Stable retrieval path clients poll while the session is active."""
        return f"{self.url_prefix}/{camera_id}/{MANIFEST_NAME}"

    def prepare(self, camera_id: str, reset: bool = False) -> Path:
        """
        Create the camera output directory if absent.

        With ``reset`` the manifest and segments of a previous run are
        removed first, so the window only ever sees the new run's files.
        """
        directory = self.camera_dir(camera_id)
        directory.mkdir(parents=True, exist_ok=True)
        if reset:
            stale = self.list_segments(camera_id) + [self.manifest_path(camera_id)]
            for path in stale:
                path.unlink(missing_ok=True)
        return directory

    def has_manifest(self, camera_id: str) -> bool:
        return self.manifest_path(camera_id).is_file()

    # ---- window --------------------------------------------------------

    def list_segments(self, camera_id: str) -> List[Path]:
        """Segment files on disk, oldest first."""
        directory = self.camera_dir(camera_id)
        if not directory.is_dir():
            return []
        segments = [p for p in directory.iterdir() if segment_number(p.name) is not None]
        return sorted(segments, key=lambda p: segment_number(p.name))

    def read_manifest(self, camera_id: str) -> Optional[str]:
        """
        Current manifest text, restricted to the newest ``window_size``
        segments that exist on disk. None when no manifest was written yet.
        """
        path = self.manifest_path(camera_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        playlist = Playlist.parse(text)
        directory = path.parent
        indexed = list(enumerate(playlist.entries))
        present = [(i, entry) for i, entry in indexed if (directory / entry[1]).is_file()]
        present = present[-self.window_size:]

        if present:
            first_index = present[0][0]
        else:
            first_index = len(playlist.entries)
        return playlist.render(
            [entry for _, entry in present],
            playlist.media_sequence + first_index,
        )

    def prune(self, camera_id: str) -> List[str]:
        """
        Delete segment files older than the newest ``window_size``.

        Returns:
            Names of removed files
        """
        segments = self.list_segments(camera_id)
        stale = segments[:-self.window_size] if len(segments) > self.window_size else []
        removed = []
        for path in stale:
            try:
                path.unlink()
                removed.append(path.name)
            except FileNotFoundError:
                # Encoder removed it first
                continue
        if removed:
            logger.debug(f"[{camera_id}] Pruned {len(removed)} stale segments")
        return removed

    def cleanup(self, camera_id: str) -> None:
        """Remove the camera output directory."""
        directory = self.camera_dir(camera_id)
        if directory.exists():
            shutil.rmtree(directory, ignore_errors=True)
            logger.info(f"[{camera_id}] Removed output directory {directory}")
