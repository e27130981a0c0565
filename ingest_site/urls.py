from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    path("", RedirectView.as_view(url="/ingest/api/health/", permanent=False)),

    path("admin/", admin.site.urls),
    path("ingest/", include("file_ingestion.urls")),
]
