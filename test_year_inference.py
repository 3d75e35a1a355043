import unittest
from datetime import date

from mailcal.models.event import EventDraft
from mailcal.services.time_service import (
    build_date_context,
    complete_end_year,
    complete_year,
    current_date,
    infer_year,
)


TODAY = date(2025, 6, 1)


class TestInferYear(unittest.TestCase):
    def test_earlier_month_rolls_to_next_year(self):
        self.assertEqual(infer_year(TODAY, 5, 10), 2026)

    def test_later_month_stays_this_year(self):
        self.assertEqual(infer_year(TODAY, 12, 25), 2025)

    def test_today_is_not_in_the_past(self):
        self.assertEqual(infer_year(TODAY, 6, 1), 2025)

    def test_same_month(self):
        today = date(2025, 6, 15)
        self.assertEqual(infer_year(today, 6, 20), 2025)
        self.assertEqual(infer_year(today, 6, 15), 2025)
        self.assertEqual(infer_year(today, 6, 14), 2026)

    def test_year_end(self):
        today = date(2025, 12, 31)
        self.assertEqual(infer_year(today, 1, 1), 2026)
        self.assertEqual(infer_year(today, 12, 31), 2025)

    def test_current_date_is_fresh(self):
        self.assertIsInstance(current_date("Asia/Tokyo"), date)
        self.assertIsInstance(current_date(), date)


class TestCompleteYear(unittest.TestCase):
    def test_prefixes_inferred_year(self):
        self.assertEqual(complete_year("05-10T10:00", TODAY), "2026-05-10T10:00")
        self.assertEqual(complete_year("12-25T14:30:00", TODAY), "2025-12-25T14:30:00")

    def test_accepts_common_yearless_shapes(self):
        self.assertEqual(complete_year("--12-25", TODAY), "2025-12-25")
        self.assertEqual(complete_year("12/25 14:30", TODAY), "2025-12-25T14:30")
        self.assertEqual(complete_year("5/10", TODAY), "2026-05-10")

    def test_full_dates_untouched(self):
        for value in ["2025-05-10T10:00:00", "2030-01-01", "not-a-date"]:
            with self.subTest(value=value):
                self.assertEqual(complete_year(value, TODAY), value)

    def test_impossible_month_or_day_untouched(self):
        self.assertEqual(complete_year("13-01T10:00", TODAY), "13-01T10:00")
        self.assertEqual(complete_year("04-31", TODAY), "04-31")

    def test_leap_day_moves_to_next_leap_year(self):
        self.assertEqual(complete_year("02-29", TODAY), "2028-02-29")

    def test_empty(self):
        self.assertEqual(complete_year("", TODAY), "")
        self.assertEqual(complete_year(None, TODAY), "")


class TestCompleteEndYear(unittest.TestCase):
    def test_end_takes_start_year(self):
        self.assertEqual(
            complete_end_year("06-01T01:00", "2026-05-31T23:00", TODAY),
            "2026-06-01T01:00",
        )

    def test_end_before_start_rolls_forward(self):
        self.assertEqual(
            complete_end_year("01-01T01:00", "2025-12-31T23:00", TODAY),
            "2026-01-01T01:00",
        )

    def test_same_day_end_keeps_start_year(self):
        self.assertEqual(complete_end_year("05-10T11:00", "2026-05-10T10:00", TODAY), "2026-05-10T11:00")

    def test_without_dated_start_falls_back_to_inference(self):
        self.assertEqual(complete_end_year("12-25T10:00", "", TODAY), "2025-12-25T10:00")
        self.assertEqual(complete_end_year("12-25T10:00", "not-a-date", TODAY), "2025-12-25T10:00")

    def test_dated_end_untouched(self):
        self.assertEqual(
            complete_end_year("2025-06-01T01:00", "2026-05-31T23:00", TODAY),
            "2025-06-01T01:00",
        )

    def test_explicit_year_skips_inference(self):
        self.assertEqual(complete_year("05-10", TODAY, year=2030), "2030-05-10")


class TestDateContext(unittest.TestCase):
    def test_mentions_today_and_both_years(self):
        text = build_date_context(TODAY)
        self.assertIn("2025-06-01", text)
        self.assertIn("Sunday", text)
        self.assertIn("use 2025", text)
        self.assertIn("use 2026", text)
        self.assertIn("7/1 means 2025-07-01", text)
        self.assertIn("5/1 means 2026-05-01", text)


class TestEventDraftNormalization(unittest.TestCase):
    def test_aliases_and_missing_fields(self):
        draft = EventDraft.model_validate(
            {"title": None, "startTime": "2025-07-01T10:00", "emailContent": "本文"}
        )
        self.assertEqual(draft.title, "")
        self.assertEqual(draft.location, "")
        self.assertEqual(draft.start_time, "2025-07-01T10:00")
        self.assertEqual(draft.source_text, "本文")

    def test_non_text_values_are_coerced(self):
        draft = EventDraft.model_validate({"title": 42, "location": ["x"]})
        self.assertEqual(draft.title, "42")
        self.assertEqual(draft.location, "")

    def test_normalized_completes_seconds_and_year(self):
        draft = EventDraft(startTime="2025-07-01T10:00", endTime="12-25T11:00")
        normalized = draft.normalized(TODAY)
        self.assertEqual(normalized.start_time, "2025-07-01T10:00:00")
        self.assertEqual(normalized.end_time, "2025-12-25T11:00:00")
        # the original is left as it was
        self.assertEqual(draft.start_time, "2025-07-01T10:00")

    def test_normalized_keeps_malformed_values(self):
        normalized = EventDraft(startTime="not-a-date").normalized(TODAY)
        self.assertEqual(normalized.start_time, "not-a-date")
        self.assertEqual(normalized.end_time, "")

    def test_yearless_event_spanning_today_ends_after_it_starts(self):
        normalized = EventDraft(startTime="05-31T23:00", endTime="06-01T01:00").normalized(TODAY)
        self.assertEqual(normalized.start_time, "2026-05-31T23:00:00")
        self.assertEqual(normalized.end_time, "2026-06-01T01:00:00")
        self.assertLessEqual(normalized.start_time, normalized.end_time)

    def test_yearless_end_follows_dated_start(self):
        normalized = EventDraft(startTime="2025-12-31T22:00", endTime="01-01T02:00").normalized(TODAY)
        self.assertEqual(normalized.end_time, "2026-01-01T02:00:00")


if __name__ == "__main__":
    unittest.main()
