from django.urls import path
from .views import UploadVideoView, VideoListView, VideoDetailView

urlpatterns = [
    path("videos/upload/", UploadVideoView.as_view(), name="video_upload"),
    path("videos/", VideoListView.as_view(), name="video_list"),
    path("videos/<str:filename>/", VideoDetailView.as_view(), name="video_detail"),
]
