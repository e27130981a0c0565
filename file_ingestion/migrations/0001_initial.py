import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="FileRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("file_name", models.CharField(max_length=255)),
                ("file_hash", models.CharField(max_length=64, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "queued"),
                            ("processing", "processing"),
                            ("completed", "completed"),
                            ("completed_with_errors", "completed_with_errors"),
                            ("failed", "failed"),
                        ],
                        db_index=True,
                        default="queued",
                        max_length=32,
                    ),
                ),
                ("total_rows", models.PositiveIntegerField(default=0)),
                ("processed_rows", models.PositiveIntegerField(default=0)),
                ("successful_rows", models.PositiveIntegerField(default=0)),
                ("failed_rows", models.PositiveIntegerField(default=0)),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("runtime_meta", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "file_records",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="DetailRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("unique_key", models.CharField(db_column="UNIQUE_KEY", max_length=255, unique=True)),
                ("product_title", models.TextField(db_column="PRODUCT_TITLE")),
                ("product_description", models.TextField(db_column="PRODUCT_DESCRIPTION")),
                ("style", models.CharField(blank=True, db_column="STYLE#", max_length=255, null=True)),
                (
                    "sanmar_mainframe_color",
                    models.CharField(blank=True, db_column="SANMAR_MAINFRAME_COLOR", max_length=255, null=True),
                ),
                ("size", models.CharField(blank=True, db_column="SIZE", max_length=255, null=True)),
                ("color_name", models.CharField(blank=True, db_column="COLOR_NAME", max_length=255, null=True)),
                (
                    "piece_price",
                    models.DecimalField(blank=True, db_column="PIECE_PRICE", decimal_places=2, max_digits=10, null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "file_record",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="details",
                        to="file_ingestion.filerecord",
                    ),
                ),
            ],
            options={
                "db_table": "file_details",
                "ordering": ["unique_key"],
            },
        ),
    ]
