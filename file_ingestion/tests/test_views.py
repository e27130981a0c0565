from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse

from file_ingestion.models import DetailRecord, FileRecord
from ingestion_worker.tasks import run_job

from .helpers import csv_bytes, make_staging_dir

VALID = csv_bytes(
    "UNIQUE_KEY,PRODUCT_TITLE,PRODUCT_DESCRIPTION,PIECE_PRICE",
    "K1,Tee,Cotton tee,9.99",
    "K2,,No title,1.00",
)


def run_inline(job):
    run_job(job.as_payload())


class IngestApiTests(TestCase):
    def setUp(self):
        self.staging_dir = make_staging_dir(self)
        override = override_settings(INGEST_STAGING_DIR=self.staging_dir)
        override.enable()
        self.addCleanup(override.disable)

        patcher = mock.patch("file_ingestion.services.gateway.enqueue_job", side_effect=run_inline)
        self.enqueue = patcher.start()
        self.addCleanup(patcher.stop)

    def _upload(self, *files):
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.post(reverse("ingest_api_upload"), {"files": list(files)})

    def test_health(self):
        resp = self.client.get(reverse("ingest_api_health"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True, "service": "django"})

    def test_upload_then_poll_status(self):
        resp = self._upload(SimpleUploadedFile("catalog.csv", VALID, content_type="text/csv"))

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["ok"])
        entry = body["data"][0]
        self.assertEqual(entry["outcome"], "queued")
        self.assertEqual(self.enqueue.call_count, 1)

        status = self.client.get(reverse("ingest_api_status", args=[entry["record_id"]])).json()["data"]
        self.assertEqual(status["status"], "completed_with_errors")
        self.assertEqual(status["total_rows"], 2)
        self.assertEqual(status["successful_rows"], 1)
        self.assertEqual(status["failed_rows"], 1)
        self.assertEqual(status["progress_percentage"], 100.0)
        self.assertEqual(len(status["row_errors"]), 1)

    def test_duplicate_upload_is_skipped(self):
        first = self._upload(SimpleUploadedFile("catalog.csv", VALID)).json()["data"][0]
        second = self._upload(SimpleUploadedFile("copy.csv", VALID)).json()["data"][0]

        self.assertEqual(second["outcome"], "skipped")
        self.assertEqual(second["record_id"], first["record_id"])
        self.assertEqual(self.enqueue.call_count, 1)
        self.assertEqual(FileRecord.objects.count(), 1)

    def test_mixed_batch_reports_each_file_in_order(self):
        resp = self._upload(
            SimpleUploadedFile("notes.pdf", b"%PDF-1.4"),
            SimpleUploadedFile("catalog.csv", VALID),
            SimpleUploadedFile("broken.csv", csv_bytes("SKU,NAME", "1,x")),
        )

        self.assertEqual(resp.status_code, 422)
        body = resp.json()
        self.assertFalse(body["ok"])
        self.assertEqual([d["outcome"] for d in body["data"]], ["rejected", "queued", "rejected"])
        self.assertEqual([d["file_name"] for d in body["data"]], ["notes.pdf", "catalog.csv", "broken.csv"])
        self.assertIn("PRODUCT_TITLE", body["data"][2]["message"])
        self.assertEqual(FileRecord.objects.count(), 1)

    @override_settings(INGEST_MAX_UPLOAD_BYTES=10)
    def test_oversized_upload_is_rejected(self):
        resp = self._upload(SimpleUploadedFile("catalog.csv", VALID))
        self.assertEqual(resp.status_code, 422)
        self.assertIn("too large", resp.json()["data"][0]["message"])
        self.assertFalse(FileRecord.objects.exists())

    def test_upload_without_files(self):
        resp = self.client.post(reverse("ingest_api_upload"), {})
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["ok"])

    def test_upload_requires_post(self):
        self.assertEqual(self.client.get(reverse("ingest_api_upload")).status_code, 405)

    def test_status_of_unknown_file(self):
        resp = self.client.get(reverse("ingest_api_status", args=[999999]))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"ok": False, "error": "File not found"})

    def test_list_files(self):
        self._upload(SimpleUploadedFile("a.csv", VALID))
        self._upload(SimpleUploadedFile("b.csv", VALID + b"K3,Polo,Pique,2\n"))

        data = self.client.get(reverse("ingest_api_files")).json()["data"]
        self.assertEqual([d["file_name"] for d in data], ["b.csv", "a.csv"])

    def test_details_by_key(self):
        self._upload(SimpleUploadedFile("catalog.csv", VALID))
        self.assertEqual(DetailRecord.objects.count(), 1)

        resp = self.client.get(reverse("ingest_api_details"), {"unique_key": "K1"})
        self.assertEqual(resp.status_code, 200)
        detail = resp.json()["data"][0]
        self.assertEqual(detail["PRODUCT_TITLE"], "Tee")
        self.assertEqual(detail["PIECE_PRICE"], "9.99")
        self.assertEqual(detail["file_record"]["file_name"], "catalog.csv")

    def test_details_validation_and_miss(self):
        self.assertEqual(self.client.get(reverse("ingest_api_details")).status_code, 422)
        resp = self.client.get(reverse("ingest_api_details"), {"unique_key": "missing"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "No records found for the given unique key")
