from rest_framework import serializers
from .models import VideoRecord
from .s3 import THUMBNAILS_PREFIX
from .utils import strip_ext


class VideoRecordSerializer(serializers.ModelSerializer):
    thumbnail_url = serializers.SerializerMethodField()

    class Meta:
        model = VideoRecord
        fields = [
            "id",
            "filename",
            "title",
            "status",
            "uploader_email",
            "video_url",
            "thumbnails_base",
            "thumbnail_url",
            "created_at",
            "updated_at",
        ]

    def get_thumbnail_url(self, obj):
        # First frame is always thumb_0001.jpg
        if not obj.thumbnails_base:
            return None
        return f"{obj.thumbnails_base}/thumb_0001.jpg"


class UploadCreateSerializer(serializers.Serializer):
    file = serializers.FileField()
    uploader_email = serializers.EmailField()
    title = serializers.CharField(required=False, allow_blank=True, max_length=255)


class JobPayloadSerializer(serializers.Serializer):
    """Queue message produced by upload acceptance: {filePath, fileName, uploaderEmail}."""

    filePath = serializers.CharField()
    fileName = serializers.CharField(max_length=255)
    uploaderEmail = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_fileName(self, value):
        if "/" in value or "\\" in value:
            raise serializers.ValidationError("fileName must not contain path separators.")
        base = strip_ext(value)
        if base in ("", ".", ".."):
            raise serializers.ValidationError("fileName does not yield a usable base name.")
        # Would collide with the thumbnails/ key space in the bucket
        if base == THUMBNAILS_PREFIX:
            raise serializers.ValidationError(f"'{THUMBNAILS_PREFIX}' is a reserved base name.")
        return value
