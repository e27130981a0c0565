from django.urls import path
from . import views

urlpatterns = [
    path("api/health/", views.api_health, name="ingest_api_health"),
    path("api/files/upload/", views.upload_files, name="ingest_api_upload"),
    path("api/files/", views.list_files, name="ingest_api_files"),
    path("api/files/<int:record_id>/status/", views.file_status, name="ingest_api_status"),
    path("api/files/details/", views.details_by_key, name="ingest_api_details"),
]
