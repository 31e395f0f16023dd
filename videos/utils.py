import os
from pathlib import Path
from uuid import uuid4

from django.conf import settings


def save_uploaded_file(djangofile) -> Path:
    """Save to MEDIA_ROOT/uploads/<uuid><ext> and return the absolute path."""
    uploads_dir = Path(settings.MEDIA_ROOT) / "uploads"
    uploads_dir.mkdir(parents=True, exist_ok=True)
    _, ext = os.path.splitext(os.path.basename(djangofile.name))
    dest = uploads_dir / f"{uuid4().hex}{ext.lower()}"
    with open(dest, "wb") as f:
        for chunk in djangofile.chunks():
            f.write(chunk)
    return dest


def strip_ext(filename: str) -> str:
    """'clip.final.mp4' -> 'clip.final'; names without an extension are returned as-is."""
    stem, ext = os.path.splitext(filename)
    return stem if ext and stem else filename


def is_video_upload(djangofile) -> bool:
    content_type = (getattr(djangofile, "content_type", "") or "").lower()
    return content_type.startswith("video/")
