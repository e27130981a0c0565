from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from file_ingestion.errors import NotFoundError
from file_ingestion.services.details import DetailStore
from file_ingestion.services.progress import ProgressStore
from file_ingestion.services.status import StatusQueryService, progress_percentage
from packages.row_contract import CatalogRow


class ProgressPercentageTests(SimpleTestCase):
    def test_zero_total_is_zero(self):
        self.assertEqual(progress_percentage(0, 0), 0)
        self.assertEqual(progress_percentage(5, 0), 0)

    def test_rounded_to_two_places(self):
        self.assertEqual(progress_percentage(1, 3), 33.33)
        self.assertEqual(progress_percentage(2, 3), 66.67)
        self.assertEqual(progress_percentage(4, 4), 100.0)


class StatusQueryServiceTests(TestCase):
    def setUp(self):
        self.progress = ProgressStore()
        self.service = StatusQueryService()
        self.record = self.progress.create("catalog.csv", "a" * 64)

    def test_status_projection(self):
        attempt = self.progress.begin_attempt(self.record.pk)
        self.progress.set_total(self.record.pk, attempt, 4)
        self.progress.checkpoint(self.record.pk, attempt, 1, 1, 0)

        data = self.service.get_status(self.record.pk)
        self.assertEqual(data["id"], self.record.pk)
        self.assertEqual(data["status"], "processing")
        self.assertEqual(data["total_rows"], 4)
        self.assertEqual(data["processed_rows"], 1)
        self.assertEqual(data["progress_percentage"], 25.0)
        self.assertEqual(data["attempts"], 1)
        self.assertEqual(data["row_errors"], [])
        self.assertIsNone(data["completed_at"])

    def test_unknown_record(self):
        with self.assertRaises(NotFoundError):
            self.service.get_status(424242)

    def test_list_newest_first(self):
        second = self.progress.create("second.csv", "b" * 64)
        self.assertEqual([d["id"] for d in self.service.list()], [second.pk, self.record.pk])

    def test_lookup_by_key(self):
        DetailStore().upsert(
            CatalogRow(unique_key="K1", product_title="Tee", product_description="Cotton", piece_price=Decimal("9.90")),
            self.record.pk,
        )
        found = self.service.lookup_by_key(" K1 ")
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0]["UNIQUE_KEY"], "K1")
        self.assertEqual(found[0]["PIECE_PRICE"], "9.90")
        self.assertEqual(found[0]["file_record"]["id"], self.record.pk)

    def test_lookup_miss_and_blank_key(self):
        with self.assertRaises(NotFoundError):
            self.service.lookup_by_key("nope")
        with self.assertRaises(NotFoundError):
            self.service.lookup_by_key("   ")
