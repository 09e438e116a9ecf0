import unittest

from poker_calendar.csv_parser import (
    BUY_IN_REFERENCE,
    canonical_headers,
    parse_schedule_csv,
)

HEADER = "Start Date,End Date,Location,Tournament,ME Buy-in,Currency,Handbook URL\n"


class CSVParserTests(unittest.TestCase):
    def test_rows_are_keyed_by_header(self) -> None:
        rows = parse_schedule_csv(
            HEADER + '2025-01-10,2025-01-12,"Taipei, Taiwan",APT Taipei,"30,000",TWD,https://example.com/h\n'
        )

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["Location"], "Taipei, Taiwan")
        self.assertEqual(rows[0]["ME Buy-in"], "30,000")
        self.assertEqual(rows[0]["Handbook URL"], "https://example.com/h")

    def test_short_rows_are_padded_with_empty_values(self) -> None:
        rows = parse_schedule_csv(HEADER + "2025-03-01,,Seoul,KPC\n")

        self.assertEqual(rows[0]["Tournament"], "KPC")
        self.assertEqual(rows[0]["ME Buy-in"], "")
        self.assertEqual(rows[0]["Handbook URL"], "")

    def test_columns_missing_from_header_read_as_empty(self) -> None:
        rows = parse_schedule_csv("Start Date,Tournament\n2025-03-01,KPC\n")

        self.assertEqual(rows[0]["Location"], "")
        self.assertEqual(rows[0]["Handbook URL"], "")

    def test_extra_cells_are_dropped(self) -> None:
        rows = parse_schedule_csv(HEADER + "2025-03-01,,Seoul,KPC,100,KRW,,surplus,more\n")

        self.assertEqual(len(rows[0]), 7)
        self.assertNotIn("surplus", rows[0].values())

    def test_blank_lines_are_skipped(self) -> None:
        rows = parse_schedule_csv(
            "\n" + HEADER + "\n2025-03-01,,Seoul,KPC,,,\n,,,,,,\n\n2025-04-01,,Manila,APT,,,\n"
        )

        self.assertEqual([row["Tournament"] for row in rows], ["KPC", "APT"])

    def test_empty_input_yields_no_rows(self) -> None:
        self.assertEqual(parse_schedule_csv(""), [])
        self.assertEqual(parse_schedule_csv(HEADER), [])

    def test_byte_order_mark_is_ignored(self) -> None:
        rows = parse_schedule_csv("\ufeff" + HEADER + "2025-03-01,,Seoul,KPC,,,\n")

        self.assertEqual(rows[0]["Start Date"], "2025-03-01")

    def test_headers_are_matched_loosely(self) -> None:
        headers = canonical_headers([" start date ", "TOURNAMENT", "ME Buy-in (USD)", "Notes"])

        self.assertEqual(headers, ["Start Date", "Tournament", BUY_IN_REFERENCE, "Notes"])

    def test_reference_buy_in_column_is_kept(self) -> None:
        rows = parse_schedule_csv(
            "Start Date,Tournament,ME Buy-in,ME Buy-in(USD),Currency\n2025-03-01,KPC,100,75,KRW\n"
        )

        self.assertEqual(rows[0][BUY_IN_REFERENCE], "75")

    def test_malformed_record_is_dropped_and_later_rows_kept(self) -> None:
        oversized = "x" * 200_000
        rows = parse_schedule_csv(
            HEADER + f"2025-03-01,,Seoul,KPC,,,\n2025-04-01,,{oversized},APT,,,\n2025-05-01,,Macau,MPC,,,\n"
        )

        self.assertEqual([row["Tournament"] for row in rows], ["KPC", "MPC"])
        self.assertEqual(rows[1]["Location"], "Macau")


if __name__ == "__main__":
    unittest.main()
