from dataclasses import dataclass


@dataclass(frozen=True)
class RenditionSpec:
    name: str
    width: int
    height: int
    video_kbps: int
    audio_kbps: int
    maxrate_kbps: int
    buffer_kbps: int

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def bandwidth_bits(self) -> int:
        """Peak bandwidth advertised in the master playlist, in bits/s."""
        return (self.video_kbps + self.audio_kbps) * 1000

    @property
    def playlist_name(self) -> str:
        return f"{self.name}.m3u8"

    @property
    def segment_pattern(self) -> str:
        return f"{self.name}_%03d.ts"


# Ascending quality; manifest order follows this list
LADDER = (
    RenditionSpec("240p", 426, 240, video_kbps=400, audio_kbps=96, maxrate_kbps=500, buffer_kbps=800),
    RenditionSpec("480p", 854, 480, video_kbps=800, audio_kbps=96, maxrate_kbps=950, buffer_kbps=1200),
    RenditionSpec("720p", 1280, 720, video_kbps=1500, audio_kbps=128, maxrate_kbps=1800, buffer_kbps=3000),
    RenditionSpec("1080p", 1920, 1080, video_kbps=3000, audio_kbps=128, maxrate_kbps=3500, buffer_kbps=5000),
)
