import logging
from functools import partial

from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .models import VideoRecord
from .serializers import UploadCreateSerializer, VideoRecordSerializer
from .tasks import enqueue_video
from .utils import is_video_upload, save_uploaded_file

logger = logging.getLogger(__name__)


class UploadVideoView(views.APIView):
    """
    Accepts a video upload, stores it under MEDIA_ROOT/uploads, creates a
    queued VideoRecord and enqueues the transcoding job once the row is committed.
    Authentication is handled in front of this service.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = UploadCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        upload = ser.validated_data["file"]

        if not is_video_upload(upload):
            return Response({"detail": "Only video files allowed"}, status=status.HTTP_400_BAD_REQUEST)
        if upload.size > settings.MAX_UPLOAD_BYTES:
            return Response({"detail": "File too large"}, status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)

        path = save_uploaded_file(upload)
        with transaction.atomic():
            record = VideoRecord.objects.create(
                filename=path.name,
                title=ser.validated_data.get("title", ""),
                uploader_email=ser.validated_data["uploader_email"],
                status=VideoRecord.Status.QUEUED,
            )
            transaction.on_commit(partial(enqueue_video, record, path))

        logger.info("Upload by %s, file: %s", record.uploader_email, record.filename)
        return Response(
            {"filename": record.filename, "status": record.status},
            status=status.HTTP_202_ACCEPTED,
        )


class VideoListView(views.APIView):
    """Published (ready) videos, newest first."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        qs = VideoRecord.objects.filter(status=VideoRecord.Status.READY).order_by("-created_at")
        return Response({"videos": VideoRecordSerializer(qs, many=True).data})


class VideoDetailView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, filename):
        record = get_object_or_404(VideoRecord, filename=filename)
        return Response(VideoRecordSerializer(record).data)
