import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import EncodeFailure
from .ffmpeg import run_ffmpeg
from .ladder import RenditionSpec

logger = logging.getLogger(__name__)


@dataclass
class EncodeResult:
    spec: RenditionSpec
    playlist_path: Path
    segment_paths: list[Path] = field(default_factory=list)


class Encoder:
    """Produces one HLS variant (playlist + segments) for a ladder entry."""

    def encode(self, spec: RenditionSpec, input_path: Path, output_dir: Path) -> EncodeResult:
        raise NotImplementedError


class FFmpegEncoder(Encoder):
    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        *,
        segment_seconds: int = 4,
        keyframe_interval: int = 48,
        timeout: float | None = None,
        runner=run_ffmpeg,
    ):
        self.ffmpeg_bin = ffmpeg_bin
        self.segment_seconds = segment_seconds
        self.keyframe_interval = keyframe_interval
        self.timeout = timeout
        self._run = runner

    def build_command(self, spec: RenditionSpec, input_path: Path, output_dir: Path) -> list[str]:
        gop = str(self.keyframe_interval)
        return [
            self.ffmpeg_bin,
            "-y",
            "-i", str(input_path),
            "-vf", f"scale={spec.width}:{spec.height}",
            "-c:v", "libx264",
            "-profile:v", "main",
            "-preset", "veryfast",
            "-b:v", f"{spec.video_kbps}k",
            "-maxrate", f"{spec.maxrate_kbps}k",
            "-bufsize", f"{spec.buffer_kbps}k",
            # Fixed GOP so every segment starts on a keyframe
            "-sc_threshold", "0",
            "-g", gop,
            "-keyint_min", gop,
            "-c:a", "aac",
            "-b:a", f"{spec.audio_kbps}k",
            "-ar", "48000",
            "-ac", "2",
            "-f", "hls",
            "-hls_time", str(self.segment_seconds),
            "-hls_playlist_type", "vod",
            "-hls_flags", "independent_segments",
            "-hls_segment_filename", str(output_dir / spec.segment_pattern),
            str(output_dir / spec.playlist_name),
        ]

    def encode(self, spec: RenditionSpec, input_path: Path, output_dir: Path) -> EncodeResult:
        logger.info(
            "Encode %s @ %s (%sk video / %sk audio)",
            spec.name, spec.resolution, spec.video_kbps, spec.audio_kbps,
        )
        self._run(self.build_command(spec, input_path, output_dir), timeout=self.timeout)
        return EncodeResult(
            spec=spec,
            playlist_path=output_dir / spec.playlist_name,
            segment_paths=sorted(output_dir.glob(f"{spec.name}_*.ts")),
        )


def encode_ladder(encoder: Encoder, ladder, input_path: Path, output_dir: Path) -> list[EncodeResult]:
    """
    Encode every rendition one after another. The first failure propagates and
    the remaining entries are not attempted. A rendition that exits cleanly but
    leaves no playlist or no segments behind counts as a failure.
    """
    results = []
    for spec in ladder:
        result = encoder.encode(spec, input_path, output_dir)
        if not result.playlist_path.is_file() or not result.segment_paths:
            raise EncodeFailure(
                [spec.name], 0, f"{spec.playlist_name} missing or lists no segments"
            )
        results.append(result)
    return results
