"""Pytest configuration and fixtures."""
import pytest

from tests.fakes import FakeEncoder, FakeS3Client, FakeThumbnailer
from videos.orchestrator import Job, JobOrchestrator
from videos.s3 import ObjectStoreUploader, RetryConfig


@pytest.fixture
def fake_s3():
    return FakeS3Client()


@pytest.fixture
def source_file(tmp_path):
    src = tmp_path / "uploads" / "clip.mp4"
    src.parent.mkdir()
    src.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return src


@pytest.fixture
def workspace_root(tmp_path):
    return tmp_path / "workspace"


@pytest.fixture
def video_record(db):
    from videos.models import VideoRecord

    return VideoRecord.objects.create(filename="clip.mp4", uploader_email="uploader@example.com")


@pytest.fixture
def make_orchestrator(fake_s3, workspace_root):
    def _make(encoder=None, thumbnailer=None, s3=None, records=None, **kwargs):
        from videos.records import VideoRecordStore

        uploader = ObjectStoreUploader(
            s3 or fake_s3, "hls",
            retry=RetryConfig(max_attempts=3, initial_delay=0.01),
            sleep=lambda s: None,
        )
        return JobOrchestrator(
            encoder=encoder or FakeEncoder(),
            thumbnailer=thumbnailer or FakeThumbnailer(),
            uploader=uploader,
            records=records or VideoRecordStore(sleep=lambda s: None),
            workspace_root=workspace_root,
            public_origin="http://media.example.com:5000",
            **kwargs,
        )
    return _make


@pytest.fixture
def make_job(source_file):
    def _make(job_id="job-1", file_name="clip.mp4", source=None):
        return Job(source_path=source or source_file, file_name=file_name,
                   uploader_email="uploader@example.com", id=job_id)
    return _make
