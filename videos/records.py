import logging
import time

from django.db import DatabaseError
from django.utils import timezone

from .models import VideoRecord

logger = logging.getLogger(__name__)

ERROR_MAX_LENGTH = 4000


class VideoRecordStore:
    """
    Status writes for VideoRecord rows, keyed by filename.

    A write that keeps failing is logged and reported as False instead of
    raising: the pipeline outcome stands even if the row goes stale.
    """

    def __init__(self, max_attempts: int = 3, retry_delay: float = 0.5, sleep=time.sleep):
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self._sleep = sleep

    def _update(self, filename: str, queryset, **fields) -> bool:
        fields["updated_at"] = timezone.now()
        for attempt in range(1, self.max_attempts + 1):
            try:
                rows = queryset.update(**fields)
                if rows == 0:
                    logger.warning("No video record updated for %s (status=%s)", filename, fields.get("status"))
                return True
            except DatabaseError as e:
                logger.warning(
                    "DB update for %s failed (%d/%d): %s", filename, attempt, self.max_attempts, e
                )
                if attempt < self.max_attempts:
                    self._sleep(self.retry_delay * attempt)
        logger.error("Giving up on DB update for %s; record left stale (wanted status=%s)",
                     filename, fields.get("status"))
        return False

    def mark_processing(self, filename: str) -> bool:
        # Never regress a published video; a redelivered job re-publishes it at the end
        qs = VideoRecord.objects.filter(
            filename=filename,
            status__in=[VideoRecord.Status.QUEUED, VideoRecord.Status.ERROR],
        )
        return self._update(filename, qs, status=VideoRecord.Status.PROCESSING, error="")

    def mark_ready(self, filename: str, video_url: str, thumbnails_base: str) -> bool:
        qs = VideoRecord.objects.filter(filename=filename)
        return self._update(
            filename, qs,
            status=VideoRecord.Status.READY,
            video_url=video_url,
            thumbnails_base=thumbnails_base,
            error="",
        )

    def mark_error(self, filename: str, error: str = "") -> bool:
        # A redelivered job that fails must not take down an already published video
        qs = VideoRecord.objects.filter(
            filename=filename,
            status__in=[VideoRecord.Status.QUEUED, VideoRecord.Status.PROCESSING, VideoRecord.Status.ERROR],
        )
        return self._update(filename, qs, status=VideoRecord.Status.ERROR, error=(error or "")[:ERROR_MAX_LENGTH])

    def is_published(self, filename: str) -> bool:
        """True when the record is ready. Assumed True if the database cannot be read."""
        try:
            return VideoRecord.objects.filter(filename=filename, status=VideoRecord.Status.READY).exists()
        except DatabaseError as e:
            logger.warning("Could not read status of %s, treating it as published: %s", filename, e)
            return True
