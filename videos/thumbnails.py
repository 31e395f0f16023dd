import logging
import re
from pathlib import Path

from .errors import EncodeFailure
from .ffmpeg import run_ffmpeg

logger = logging.getLogger(__name__)

THUMB_PATTERN = "thumb_%04d.jpg"
_THUMB_RE = re.compile(r"^thumb_(\d{4,})\.jpg$")


class ThumbnailExtractor:
    """Grabs one frame every `interval_seconds`, at most `max_frames` of them."""

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        *,
        interval_seconds: int = 5,
        max_frames: int = 60,
        timeout: float | None = None,
        runner=run_ffmpeg,
    ):
        if interval_seconds <= 0 or max_frames <= 0:
            raise ValueError("interval_seconds and max_frames must be positive")
        self.ffmpeg_bin = ffmpeg_bin
        self.interval_seconds = interval_seconds
        self.max_frames = max_frames
        self.timeout = timeout
        self._run = runner

    def build_command(self, input_path: Path, output_dir: Path) -> list[str]:
        return [
            self.ffmpeg_bin,
            "-y",
            "-i", str(input_path),
            "-vf", f"fps=1/{self.interval_seconds}",
            "-frames:v", str(self.max_frames),
            "-start_number", "1",
            str(output_dir / THUMB_PATTERN),
        ]

    def extract(self, input_path: Path, output_dir: Path) -> list[Path]:
        cmd = self.build_command(input_path, output_dir)
        self._run(cmd, timeout=self.timeout)

        numbered = []
        for p in Path(output_dir).iterdir():
            m = _THUMB_RE.match(p.name)
            if m:
                numbered.append((int(m.group(1)), p))
        numbered.sort()

        numbers = [n for n, _ in numbered]
        if numbers != list(range(1, len(numbers) + 1)) or len(numbers) > self.max_frames:
            raise EncodeFailure(cmd, 0, f"unexpected thumbnail numbering: {numbers[:10]}...")

        logger.info("%d thumbnail(s) generated", len(numbers))
        return [p for _, p in numbered]
