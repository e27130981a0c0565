from django.db import models


class FileRecord(models.Model):
    STATUS_QUEUED = "queued"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_COMPLETED_WITH_ERRORS = "completed_with_errors"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_QUEUED, "queued"),
        (STATUS_PROCESSING, "processing"),
        (STATUS_COMPLETED, "completed"),
        (STATUS_COMPLETED_WITH_ERRORS, "completed_with_errors"),
        (STATUS_FAILED, "failed"),
    ]
    TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_COMPLETED_WITH_ERRORS, STATUS_FAILED})

    file_name = models.CharField(max_length=255)
    file_hash = models.CharField(max_length=64, unique=True)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=STATUS_QUEUED, db_index=True)

    total_rows = models.PositiveIntegerField(default=0)
    processed_rows = models.PositiveIntegerField(default=0)
    successful_rows = models.PositiveIntegerField(default=0)
    failed_rows = models.PositiveIntegerField(default=0)
    attempts = models.PositiveIntegerField(default=0)

    error_message = models.TextField(blank=True, null=True)
    runtime_meta = models.JSONField(blank=True, default=dict)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    completed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = "file_records"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.file_name} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES


class DetailRecord(models.Model):
    file_record = models.ForeignKey(FileRecord, on_delete=models.CASCADE, related_name="details")

    unique_key = models.CharField(max_length=255, unique=True, db_column="UNIQUE_KEY")
    product_title = models.TextField(db_column="PRODUCT_TITLE")
    product_description = models.TextField(db_column="PRODUCT_DESCRIPTION")
    style = models.CharField(max_length=255, blank=True, null=True, db_column="STYLE#")
    sanmar_mainframe_color = models.CharField(max_length=255, blank=True, null=True, db_column="SANMAR_MAINFRAME_COLOR")
    size = models.CharField(max_length=255, blank=True, null=True, db_column="SIZE")
    color_name = models.CharField(max_length=255, blank=True, null=True, db_column="COLOR_NAME")
    piece_price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True, db_column="PIECE_PRICE")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "file_details"
        ordering = ["unique_key"]

    def __str__(self):
        return self.unique_key
