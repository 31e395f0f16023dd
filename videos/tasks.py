from celery import shared_task
from celery.signals import worker_ready
from celery.utils.log import get_task_logger
from django.conf import settings

from .encoder import FFmpegEncoder
from .errors import InvalidJob
from .orchestrator import Job, JobOrchestrator
from .records import VideoRecordStore
from .s3 import ObjectStoreUploader, RetryConfig, ensure_bucket, get_s3_client
from .serializers import JobPayloadSerializer
from .thumbnails import ThumbnailExtractor

logger = get_task_logger(__name__)


def build_orchestrator(s3_client=None) -> JobOrchestrator:
    """Wire a JobOrchestrator from Django settings."""
    uploader = ObjectStoreUploader(
        s3_client or get_s3_client(),
        settings.HLS_BUCKET,
        retry=RetryConfig(
            max_attempts=settings.UPLOAD_MAX_ATTEMPTS,
            initial_delay=settings.UPLOAD_BACKOFF_SECONDS,
            max_delay=settings.UPLOAD_BACKOFF_MAX_SECONDS,
        ),
    )
    return JobOrchestrator(
        encoder=FFmpegEncoder(
            settings.FFMPEG_BIN,
            segment_seconds=settings.HLS_SEGMENT_SECONDS,
            keyframe_interval=settings.HLS_KEYFRAME_INTERVAL,
            timeout=settings.ENCODE_TIMEOUT_SECONDS,
        ),
        thumbnailer=ThumbnailExtractor(
            settings.FFMPEG_BIN,
            interval_seconds=settings.THUMBNAIL_INTERVAL_SECONDS,
            max_frames=settings.THUMBNAIL_MAX_FRAMES,
            timeout=settings.THUMBNAIL_TIMEOUT_SECONDS,
        ),
        uploader=uploader,
        records=VideoRecordStore(max_attempts=settings.PERSIST_MAX_ATTEMPTS),
        workspace_root=settings.WORKSPACE_ROOT,
        public_origin=settings.PUBLIC_ORIGIN,
        keep_source_on_failure=settings.KEEP_SOURCE_ON_FAILURE,
    )


def parse_job(payload, job_id: str | None = None) -> Job:
    ser = JobPayloadSerializer(data=payload if isinstance(payload, dict) else {})
    if not ser.is_valid():
        raise InvalidJob(ser.errors)
    return Job.from_payload(ser.validated_data, job_id=job_id)


@shared_task(bind=True, name="videos.process_video", acks_late=True, reject_on_worker_lost=True)
def process_video(self, payload: dict):
    """
    Consume one queued upload. Returns the job result on success; any failure is
    raised so Celery records it and the broker's redelivery policy applies.
    """
    job = parse_job(payload, job_id=self.request.id)
    logger.info("Received job %s for %s (uploader: %s)", job.id, job.file_name, job.uploader_email or "-")
    result = build_orchestrator().run(job)
    logger.info("Completed job %s", job.id)
    return result.as_dict()


def enqueue_video(record, file_path) -> str:
    """Send the processing job for an accepted upload; returns the task id."""
    payload = {
        "filePath": str(file_path),
        "fileName": record.filename,
        "uploaderEmail": record.uploader_email,
    }
    return process_video.apply_async(args=[payload], queue=settings.VIDEO_QUEUE).id


@worker_ready.connect
def _ensure_hls_bucket(sender=None, **kwargs):
    try:
        ensure_bucket(get_s3_client(), settings.HLS_BUCKET)
    except Exception as e:
        # Jobs will surface the storage problem themselves
        logger.error("Could not verify bucket %s: %s", settings.HLS_BUCKET, e)
