import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import ManifestWriteFailure

logger = logging.getLogger(__name__)

MASTER_PLAYLIST = "master.m3u8"
HEADER = ("#EXTM3U", "#EXT-X-VERSION:3")
STREAM_INF = "#EXT-X-STREAM-INF:"


@dataclass(frozen=True)
class ManifestEntry:
    bandwidth_bits: int
    resolution: str
    variant_playlist: str


def manifest_entries(ladder) -> list[ManifestEntry]:
    return [ManifestEntry(r.bandwidth_bits, r.resolution, r.playlist_name) for r in ladder]


def render_master_playlist(ladder) -> str:
    lines = list(HEADER)
    for entry in manifest_entries(ladder):
        lines.append(f"{STREAM_INF}BANDWIDTH={entry.bandwidth_bits},RESOLUTION={entry.resolution}")
        lines.append(entry.variant_playlist)
    return "\n".join(lines) + "\n"


def write_master_playlist(ladder, output_dir: Path) -> Path:
    path = Path(output_dir) / MASTER_PLAYLIST
    try:
        path.write_text(render_master_playlist(ladder), encoding="utf-8")
    except OSError as e:
        raise ManifestWriteFailure(path) from e
    logger.info("master playlist written: %s", path)
    return path


def parse_master_playlist(text: str) -> list[ManifestEntry]:
    """Read back the variant entries of a master playlist (attribute line + URI line pairs)."""
    lines = [ln.strip() for ln in text.splitlines()]
    if not lines or lines[0] != "#EXTM3U":
        raise ValueError("not an M3U playlist")

    entries = []
    pending = None
    for ln in lines[1:]:
        if ln.startswith(STREAM_INF):
            attrs = dict(
                part.split("=", 1) for part in ln[len(STREAM_INF):].split(",") if "=" in part
            )
            pending = (int(attrs["BANDWIDTH"]), attrs.get("RESOLUTION", ""))
        elif ln and not ln.startswith("#"):
            if pending is None:
                raise ValueError(f"URI without stream info: {ln}")
            entries.append(ManifestEntry(pending[0], pending[1], ln))
            pending = None
    return entries
