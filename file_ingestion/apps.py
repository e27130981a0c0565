import logging

from django.apps import AppConfig

logger = logging.getLogger("file_ingestion")


class FileIngestionConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "file_ingestion"

    def ready(self) -> None:
        """Load worker config and the Celery app once, so web and worker processes agree on both."""
        from ingestion_worker.app_config import bootstrap
        import ingestion_worker.celery_app  # noqa: F401

        logger.debug("ingest config: %s", bootstrap())
