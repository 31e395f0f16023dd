"""
Job orchestration for one uploaded video.

Stages run strictly in order:

    received -> encoding -> manifesting -> thumbnailing -> uploading -> publishing -> done

Any exception after `received` moves the job to `error`: the record is marked
`error`, the workspace is cleaned up and the exception is re-raised to the
queue consumer. If uploading fails for a video that was never published, the
objects this run stored are deleted again. The master playlist is the last
HLS object written, so a failed job never exposes a playable stream.
"""
import enum
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from .encoder import encode_ladder
from .ladder import LADDER
from .manifest import MASTER_PLAYLIST, write_master_playlist
from .s3 import RETRYABLE_ERRORS, hls_prefix, public_urls, thumbnails_prefix
from .utils import strip_ext
from .workspace import Workspace

logger = logging.getLogger(__name__)


class Stage(str, enum.Enum):
    RECEIVED = "received"
    ENCODING = "encoding"
    MANIFESTING = "manifesting"
    THUMBNAILING = "thumbnailing"
    UPLOADING = "uploading"
    PUBLISHING = "publishing"
    DONE = "done"
    ERROR = "error"


@dataclass
class Job:
    source_path: Path
    file_name: str
    uploader_email: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def base_name(self) -> str:
        return strip_ext(self.file_name)

    @classmethod
    def from_payload(cls, data: dict, job_id: str | None = None) -> "Job":
        return cls(
            source_path=Path(data["filePath"]),
            file_name=data["fileName"],
            uploader_email=data.get("uploaderEmail", ""),
            id=job_id or uuid.uuid4().hex,
        )


@dataclass
class JobResult:
    job_id: str
    base_name: str
    status: str
    video_url: str
    thumbnails_base: str
    objects: list = field(default_factory=list)
    persisted: bool = True

    def as_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "base_name": self.base_name,
            "status": self.status,
            "video_url": self.video_url,
            "thumbnails_base": self.thumbnails_base,
            "objects": len(self.objects),
            "persisted": self.persisted,
        }


class JobOrchestrator:
    def __init__(
        self,
        *,
        encoder,
        thumbnailer,
        uploader,
        records,
        workspace_root: Path,
        public_origin: str,
        ladder=LADDER,
        keep_source_on_failure: bool = False,
    ):
        self.encoder = encoder
        self.thumbnailer = thumbnailer
        self.uploader = uploader
        self.records = records
        self.workspace_root = Path(workspace_root)
        self.public_origin = public_origin
        self.ladder = tuple(ladder)
        self.keep_source_on_failure = keep_source_on_failure
        self.stage = None

    def _enter(self, stage: Stage, job: Job):
        self.stage = stage
        logger.info("Job %s [%s] -> %s", job.id, job.base_name, stage.value)

    def run(self, job: Job) -> JobResult:
        started = time.monotonic()
        base = job.base_name
        self._enter(Stage.RECEIVED, job)
        logger.info("Job %s: file %s, base %s", job.id, job.file_name, base)

        published = self.records.is_published(job.file_name)
        self.records.mark_processing(job.file_name)
        ws = None
        try:
            ws = Workspace.create(self.workspace_root, job.id, base, job.source_path)

            self._enter(Stage.ENCODING, job)
            renditions = encode_ladder(self.encoder, self.ladder, job.source_path, ws.hls_dir)
            logger.info(
                "Job %s: %s",
                job.id, ", ".join(f"{r.spec.name}={len(r.segment_paths)} seg" for r in renditions),
            )

            self._enter(Stage.MANIFESTING, job)
            master_path = write_master_playlist(self.ladder, ws.hls_dir)

            self._enter(Stage.THUMBNAILING, job)
            self.thumbnailer.extract(job.source_path, ws.thumbnails_dir)

            self._enter(Stage.UPLOADING, job)
            objects = self._upload(ws, base, master_path)

            self._enter(Stage.PUBLISHING, job)
            video_url, thumbs_base = public_urls(self.public_origin, base)
            persisted = self.records.mark_ready(job.file_name, video_url, thumbs_base)
        except Exception as e:
            failed_at = self.stage
            self.stage = Stage.ERROR
            logger.error("Job %s failed during %s: %s", job.id, failed_at.value, e)
            if failed_at is Stage.UPLOADING and not published:
                self._discard_partial(base)
            self.records.mark_error(job.file_name, f"{failed_at.value}: {e}")
            if ws is not None:
                ws.cleanup(remove_source=not self.keep_source_on_failure)
            elif not self.keep_source_on_failure:
                Workspace(self.workspace_root, job.id, base, job.source_path).cleanup()
            raise

        ws.cleanup()
        self._enter(Stage.DONE, job)
        logger.info("Job %s complete in %ds: %s", job.id, round(time.monotonic() - started), video_url)
        return JobResult(
            job_id=job.id,
            base_name=base,
            status="ready",
            video_url=video_url,
            thumbnails_base=thumbs_base,
            objects=objects,
            persisted=persisted,
        )

    def _upload(self, ws: Workspace, base: str, master_path: Path) -> list:
        logger.info("Uploading HLS …")
        hls_key = hls_prefix(base)
        master_key = f"{hls_key}/{MASTER_PLAYLIST}"
        # master.m3u8 is held back from the bulk pass and written once every
        # variant and segment is stored, so readers never see dangling variants.
        hls_objects = self.uploader.upload_tree(ws.hls_dir, hls_key, exclude=[master_path.name])
        hls_objects.append(self.uploader.upload_file(master_path, master_key))
        self.uploader.prune(hls_key, [o.key for o in hls_objects])

        logger.info("Uploading thumbnails …")
        thumbs_key = thumbnails_prefix(base)
        thumb_objects = self.uploader.upload_tree(ws.thumbnails_dir, thumbs_key)
        self.uploader.prune(thumbs_key, [o.key for o in thumb_objects])
        return hls_objects + thumb_objects

    def _discard_partial(self, base: str):
        # Only called when no earlier run published this base name
        for prefix in (hls_prefix(base), thumbnails_prefix(base)):
            try:
                removed = self.uploader.discard(prefix)
            except RETRYABLE_ERRORS as e:
                logger.error("Could not discard partial upload under %s/: %s", prefix, e)
                continue
            if removed:
                logger.info("Discarded %d partial object(s) under %s/", len(removed), prefix)
