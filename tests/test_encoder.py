"""Tests for ffmpeg invocation, rendition encoding and thumbnail extraction."""
import os
import signal
import subprocess
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from celery.exceptions import SoftTimeLimitExceeded

from videos.encoder import FFmpegEncoder, encode_ladder
from videos.errors import EncodeFailure
from videos.ffmpeg import run_ffmpeg
from videos.ladder import LADDER
from videos.thumbnails import ThumbnailExtractor

from tests.fakes import FakeEncoder

# Writes its pid to argv[1], then outlives any test
SLEEPER = "import os, sys, time; open(sys.argv[1], 'w').write(str(os.getpid())); time.sleep(60)"


def _arg(cmd, flag):
    return cmd[cmd.index(flag) + 1]


def assert_process_gone(pid_file):
    pid = int(pid_file.read_text())
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


class TestFFmpegEncoder:
    def test_command_carries_rendition_settings(self, tmp_path):
        spec = LADDER[2]  # 720p
        enc = FFmpegEncoder("ffmpeg", segment_seconds=4, keyframe_interval=48)
        cmd = enc.build_command(spec, Path("/in/source.mp4"), tmp_path)

        assert cmd[0] == "ffmpeg"
        assert _arg(cmd, "-i") == "/in/source.mp4"
        assert _arg(cmd, "-vf") == "scale=1280:720"
        assert _arg(cmd, "-b:v") == "1500k"
        assert _arg(cmd, "-maxrate") == "1800k"
        assert _arg(cmd, "-bufsize") == "3000k"
        assert _arg(cmd, "-g") == "48"
        assert _arg(cmd, "-keyint_min") == "48"
        assert _arg(cmd, "-sc_threshold") == "0"
        assert _arg(cmd, "-b:a") == "128k"
        assert _arg(cmd, "-hls_time") == "4"
        assert _arg(cmd, "-hls_playlist_type") == "vod"
        assert _arg(cmd, "-hls_segment_filename") == str(tmp_path / "720p_%03d.ts")
        assert cmd[-1] == str(tmp_path / "720p.m3u8")

    def test_encode_runs_with_timeout_and_collects_segments(self, tmp_path):
        spec = LADDER[0]

        def fake_run(cmd, timeout=None):
            (tmp_path / "240p.m3u8").write_text("#EXTM3U\n")
            for i in range(3):
                (tmp_path / f"240p_{i:03d}.ts").write_bytes(b"x")

        runner = Mock(side_effect=fake_run)
        result = FFmpegEncoder(timeout=120, runner=runner).encode(spec, Path("in.mp4"), tmp_path)

        assert runner.call_args.kwargs["timeout"] == 120
        assert result.playlist_path == tmp_path / "240p.m3u8"
        assert [p.name for p in result.segment_paths] == ["240p_000.ts", "240p_001.ts", "240p_002.ts"]

    def test_encode_ladder_is_sequential_and_stops_on_failure(self, tmp_path):
        encoder = FakeEncoder(fail_on="480p")
        with pytest.raises(EncodeFailure):
            encode_ladder(encoder, LADDER, Path("in.mp4"), tmp_path)
        assert encoder.calls == ["240p", "480p"]
        assert not (tmp_path / "720p.m3u8").exists()

    def test_encode_ladder_rejects_rendition_without_segments(self, tmp_path):
        encoder = FakeEncoder(segments=0)
        with pytest.raises(EncodeFailure) as exc:
            encode_ladder(encoder, LADDER, Path("in.mp4"), tmp_path)
        assert "240p.m3u8" in str(exc.value)
        assert encoder.calls == ["240p"]

    def test_encode_ladder_returns_one_result_per_rendition(self, tmp_path):
        results = encode_ladder(FakeEncoder(segments=2), LADDER, Path("in.mp4"), tmp_path)
        assert [r.spec.name for r in results] == [r.name for r in LADDER]
        assert all(r.playlist_path.is_file() and len(r.segment_paths) == 2 for r in results)


class TestRunFFmpeg:
    def test_nonzero_exit_raises_encode_failure(self):
        err = subprocess.CalledProcessError(1, ["ffmpeg"], output=b"", stderr=b"Invalid data found")
        with patch("videos.ffmpeg.subprocess.run", side_effect=err):
            with pytest.raises(EncodeFailure) as exc:
                run_ffmpeg(["ffmpeg", "-i", "bad.mp4"])
        assert exc.value.returncode == 1
        assert "Invalid data found" in exc.value.stderr
        assert not exc.value.timed_out

    def test_timeout_raises_encode_failure(self):
        err = subprocess.TimeoutExpired(["ffmpeg"], 5, output=b"", stderr=b"frame=  10")
        with patch("videos.ffmpeg.subprocess.run", side_effect=err):
            with pytest.raises(EncodeFailure) as exc:
                run_ffmpeg(["ffmpeg", "-i", "slow.mp4"], timeout=5)
        assert exc.value.timed_out
        assert "timed out" in str(exc.value)

    def test_missing_binary_raises_encode_failure(self):
        with pytest.raises(EncodeFailure) as exc:
            run_ffmpeg(["/nonexistent/ffmpeg-binary", "-version"])
        assert exc.value.returncode is None

    def test_success_passes_timeout_through(self):
        done = subprocess.CompletedProcess(["ffmpeg"], 0, stdout=b"", stderr=b"")
        with patch("videos.ffmpeg.subprocess.run", return_value=done) as run:
            assert run_ffmpeg(["ffmpeg", "-version"], timeout=30) is done
        assert run.call_args.kwargs["timeout"] == 30
        assert run.call_args.kwargs["check"] is True

    def test_timeout_kills_real_child(self, tmp_path):
        pid_file = tmp_path / "child.pid"
        cmd = [sys.executable, "-c", SLEEPER, str(pid_file)]
        with pytest.raises(EncodeFailure) as exc:
            run_ffmpeg(cmd, timeout=2)
        assert exc.value.timed_out
        assert_process_gone(pid_file)

    @pytest.mark.skipif(not hasattr(signal, "setitimer"), reason="needs SIGALRM")
    def test_soft_time_limit_while_waiting_kills_real_child(self, tmp_path):
        # Celery delivers the soft limit as an exception raised in the waiting frame
        def on_alarm(signum, frame):
            raise SoftTimeLimitExceeded()

        pid_file = tmp_path / "child.pid"
        previous = signal.signal(signal.SIGALRM, on_alarm)
        signal.setitimer(signal.ITIMER_REAL, 2.0)
        try:
            with pytest.raises(SoftTimeLimitExceeded):
                run_ffmpeg([sys.executable, "-c", SLEEPER, str(pid_file)], timeout=60)
        finally:
            signal.setitimer(signal.ITIMER_REAL, 0)
            signal.signal(signal.SIGALRM, previous)
        assert_process_gone(pid_file)


class TestThumbnailExtractor:
    def test_command_samples_interval_and_caps_frames(self, tmp_path):
        cmd = ThumbnailExtractor(interval_seconds=5, max_frames=60).build_command(Path("in.mp4"), tmp_path)
        assert _arg(cmd, "-vf") == "fps=1/5"
        assert _arg(cmd, "-frames:v") == "60"
        assert _arg(cmd, "-start_number") == "1"
        assert cmd[-1] == str(tmp_path / "thumb_%04d.jpg")

    def test_extract_returns_contiguous_frames(self, tmp_path):
        def fake_run(cmd, timeout=None):
            for i in range(1, 4):
                (tmp_path / f"thumb_{i:04d}.jpg").write_bytes(b"\xff\xd8")

        frames = ThumbnailExtractor(runner=fake_run).extract(Path("in.mp4"), tmp_path)
        assert [p.name for p in frames] == ["thumb_0001.jpg", "thumb_0002.jpg", "thumb_0003.jpg"]

    def test_gap_in_numbering_is_an_error(self, tmp_path):
        def fake_run(cmd, timeout=None):
            for i in (1, 2, 4):
                (tmp_path / f"thumb_{i:04d}.jpg").write_bytes(b"\xff\xd8")

        with pytest.raises(EncodeFailure):
            ThumbnailExtractor(runner=fake_run).extract(Path("in.mp4"), tmp_path)

    def test_more_frames_than_cap_is_an_error(self, tmp_path):
        def fake_run(cmd, timeout=None):
            for i in range(1, 5):
                (tmp_path / f"thumb_{i:04d}.jpg").write_bytes(b"\xff\xd8")

        with pytest.raises(EncodeFailure):
            ThumbnailExtractor(max_frames=3, runner=fake_run).extract(Path("in.mp4"), tmp_path)

    def test_rejects_non_positive_settings(self):
        with pytest.raises(ValueError):
            ThumbnailExtractor(interval_seconds=0)
