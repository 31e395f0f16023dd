from django.db import models


class VideoRecord(models.Model):
    class Status(models.TextChoices):
        QUEUED = "queued"
        PROCESSING = "processing"
        READY = "ready"
        ERROR = "error"

    filename = models.CharField(max_length=255, unique=True)   # stored upload name, e.g. 3f2a...e1.mp4
    title = models.CharField(max_length=255, blank=True, default="")
    uploader_email = models.EmailField(blank=True, default="")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.QUEUED, db_index=True)
    video_url = models.URLField(max_length=512, blank=True, default="")
    thumbnails_base = models.URLField(max_length=512, blank=True, default="")
    error = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    # Pipeline writes go through QuerySet.update(), which sets this explicitly
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "videos"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.filename} ({self.status})"
