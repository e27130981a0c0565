import io
from decimal import Decimal

from django.test import SimpleTestCase

from packages.row_contract import (
    SKIPPED_BLANK,
    HeaderError,
    HeaderIndex,
    RowInvalid,
    RowSuccess,
    clean_text,
    is_blank,
    iter_data_records,
    parse_price,
    project_row,
)

HEADER = HeaderIndex.parse(["UNIQUE_KEY", "PRODUCT_TITLE", "PRODUCT_DESCRIPTION", "PIECE_PRICE"])


class CleanTextTests(SimpleTestCase):
    def test_strips_control_characters_but_keeps_tabs_and_newlines(self):
        self.assertEqual(clean_text("a\x00b\x07c\td\ne\x7f"), "abc\td\ne")

    def test_drops_invalid_utf8_bytes(self):
        self.assertEqual(clean_text(b"caf\xc3\xa9 \xff\xfeok"), "café ok")

    def test_trims_and_removes_leading_bom(self):
        self.assertEqual(clean_text("\ufeff  UNIQUE_KEY "), "UNIQUE_KEY")

    def test_none_becomes_empty(self):
        self.assertEqual(clean_text(None), "")

    def test_blank_detection(self):
        self.assertTrue(is_blank([]))
        self.assertTrue(is_blank(["", "  ", "\x00"]))
        self.assertFalse(is_blank(["", "x"]))


class HeaderIndexTests(SimpleTestCase):
    def test_trims_names_and_maps_positions(self):
        header = HeaderIndex.parse([" UNIQUE_KEY", "PRODUCT_TITLE ", "EXTRA", "PRODUCT_DESCRIPTION"])
        self.assertEqual(header.width, 4)
        self.assertEqual(header.positions["PRODUCT_DESCRIPTION"], 3)
        self.assertEqual(header.positions["EXTRA"], 2)

    def test_missing_required_column_is_named(self):
        with self.assertRaises(HeaderError) as ctx:
            HeaderIndex.parse(["UNIQUE_KEY", "PRODUCT_DESCRIPTION"])
        self.assertIn("PRODUCT_TITLE", str(ctx.exception))

    def test_empty_header_rejected(self):
        with self.assertRaises(HeaderError):
            HeaderIndex.parse(None)
        with self.assertRaises(HeaderError):
            HeaderIndex.parse(["", " "])

    def test_first_duplicate_column_wins(self):
        header = HeaderIndex.parse(["UNIQUE_KEY", "PRODUCT_TITLE", "PRODUCT_DESCRIPTION", "PRODUCT_TITLE"])
        self.assertEqual(header.positions["PRODUCT_TITLE"], 1)


class ParsePriceTests(SimpleTestCase):
    def test_empty_is_null(self):
        self.assertIsNone(parse_price(""))
        self.assertIsNone(parse_price("   "))

    def test_currency_formatting_is_accepted(self):
        self.assertEqual(parse_price("$1,234.5"), Decimal("1234.50"))
        self.assertEqual(parse_price("12.345"), Decimal("12.35"))

    def test_garbage_is_an_error(self):
        for raw in ("abc", "12,34,5x", "NaN", "Infinity", "1e9"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    parse_price(raw)


class ProjectRowTests(SimpleTestCase):
    def test_valid_row(self):
        outcome = project_row(HEADER, ["K1", " Tee ", "Cotton tee", "9.99"])
        self.assertIsInstance(outcome, RowSuccess)
        self.assertEqual(outcome.row.unique_key, "K1")
        self.assertEqual(outcome.row.product_title, "Tee")
        self.assertEqual(outcome.row.piece_price, Decimal("9.99"))
        self.assertIsNone(outcome.row.style)

    def test_blank_row_is_skipped(self):
        self.assertIs(project_row(HEADER, ["", " ", "", ""]), SKIPPED_BLANK)
        self.assertIs(project_row(HEADER, []), SKIPPED_BLANK)

    def test_column_count_mismatch(self):
        outcome = project_row(HEADER, ["K1", "Tee"])
        self.assertIsInstance(outcome, RowInvalid)
        self.assertIn("Column count mismatch", outcome.reason)

    def test_missing_mandatory_value(self):
        outcome = project_row(HEADER, ["K1", "", "Cotton tee", ""])
        self.assertIsInstance(outcome, RowInvalid)
        self.assertIn("PRODUCT_TITLE", outcome.reason)

    def test_unparseable_price_is_a_row_error(self):
        outcome = project_row(HEADER, ["K1", "Tee", "Cotton tee", "ten dollars"])
        self.assertIsInstance(outcome, RowInvalid)
        self.assertIn("PIECE_PRICE", outcome.reason)

    def test_empty_price_is_null(self):
        outcome = project_row(HEADER, ["K1", "Tee", "Cotton tee", ""])
        self.assertIsInstance(outcome, RowSuccess)
        self.assertIsNone(outcome.row.piece_price)

    def test_overlong_key_is_rejected(self):
        outcome = project_row(HEADER, ["K" * 256, "Tee", "Cotton tee", ""])
        self.assertIsInstance(outcome, RowInvalid)
        self.assertIn("UNIQUE_KEY", outcome.reason)

    def test_optional_columns_are_mapped(self):
        header = HeaderIndex.parse(["UNIQUE_KEY", "PRODUCT_TITLE", "PRODUCT_DESCRIPTION", "STYLE#", "SIZE", "COLOR_NAME"])
        outcome = project_row(header, ["K1", "Tee", "Cotton tee", "PC61", "XL", ""])
        self.assertEqual(outcome.row.style, "PC61")
        self.assertEqual(outcome.row.size, "XL")
        self.assertIsNone(outcome.row.color_name)


class DataRecordReaderTests(SimpleTestCase):
    def test_oversized_field_is_reported_and_reading_continues(self):
        text = "UNIQUE_KEY,PRODUCT_TITLE\r\nK1,Tee\r\nK2," + "x" * 200_000 + "\r\nK3,Polo\r\n"

        records = list(iter_data_records(io.StringIO(text, newline="")))

        self.assertEqual(len(records), 3)
        self.assertEqual(records[0], (2, ["K1", "Tee"], None))
        line_no, values, error = records[1]
        self.assertEqual(line_no, 3)
        self.assertIsNone(values)
        self.assertIn("field larger than field limit", error)
        self.assertEqual(records[2], (4, ["K3", "Polo"], None))
