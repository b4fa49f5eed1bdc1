import unittest
from datetime import date, datetime
from functools import partial

import fitsnap.models  # noqa: F401
from fitsnap.models.photo_entry import PhotoEntry
from fitsnap.services.gallery import (
    NOT_ENOUGH_PHOTOS_MESSAGE,
    build_comparison,
    carousel_slide,
    comparison_defaults,
    entries_with_photos,
)
from fitsnap.services.share import shared_image_url


def make_entry(day: str, front: bool = True, back: bool = False) -> PhotoEntry:
    entry_date = date.fromisoformat(day)
    return PhotoEntry(
        owner_id=1,
        entry_date=entry_date,
        front_photo_key=f"photos/1/{day}/front.jpg" if front else None,
        back_photo_key=f"photos/1/{day}/back.jpg" if back else None,
        uploaded_at=datetime(2024, 1, 1),
    )


# newest first, like PhotoService.get_all_photo_entries
ENTRIES = [
    make_entry("2024-03-03", front=True, back=True),
    make_entry("2024-03-02", front=False, back=True),
    make_entry("2024-03-01", front=True),
]


class CarouselTests(unittest.TestCase):
    def test_empty(self):
        result = carousel_slide([], 0)
        self.assertEqual(result.total, 0)
        self.assertIsNone(result.slide)

    def test_first_slide_is_newest(self):
        result = carousel_slide(ENTRIES, 0)
        self.assertEqual(result.total, 3)
        self.assertEqual(result.slide.entry.date, "2024-03-03")
        self.assertEqual(result.slide.position, 1)
        self.assertFalse(result.slide.has_previous)
        self.assertTrue(result.slide.has_next)
        self.assertEqual(result.slide.label, "1 / 3")

    def test_index_is_clamped(self):
        result = carousel_slide(ENTRIES, 99)
        self.assertEqual(result.slide.index, 2)
        self.assertEqual(result.slide.entry.date, "2024-03-01")
        self.assertTrue(result.slide.has_previous)
        self.assertFalse(result.slide.has_next)

    def test_entries_without_photos_are_skipped(self):
        entries = ENTRIES + [make_entry("2024-02-01", front=False)]
        self.assertEqual(len(entries_with_photos(entries)), 3)
        self.assertEqual(carousel_slide(entries, 0).total, 3)

    def test_custom_url_builder(self):
        result = carousel_slide(ENTRIES, 0, url_builder=partial(shared_image_url, "tok"))
        self.assertEqual(
            result.slide.entry.front_photo_url,
            "/share/tok/photos/2024-03-03/front/image",
        )


class ComparisonTests(unittest.TestCase):
    def test_defaults_are_oldest_and_newest_for_side(self):
        self.assertEqual(comparison_defaults(ENTRIES, "front"), ("2024-03-01", "2024-03-03"))
        self.assertEqual(comparison_defaults(ENTRIES, "back"), ("2024-03-02", "2024-03-03"))

    def test_defaults_need_two_entries(self):
        self.assertIsNone(comparison_defaults(ENTRIES[:1], "front"))

    def test_build_comparison_defaults(self):
        result = build_comparison(ENTRIES, "front")
        self.assertEqual(result.before.date, "2024-03-01")
        self.assertEqual(result.after.date, "2024-03-03")
        self.assertEqual(result.available_dates, ["2024-03-03", "2024-03-01"])
        self.assertEqual(result.after.url, "/photos/2024-03-03/front/image")
        self.assertTrue(result.can_compare)

    def test_same_date_cannot_compare(self):
        result = build_comparison(ENTRIES, "front", before="2024-03-03", after="2024-03-03")
        self.assertFalse(result.can_compare)

    def test_date_without_photo_has_no_url(self):
        result = build_comparison(ENTRIES, "front", before="2024-03-02")
        self.assertIsNone(result.before.url)
        self.assertFalse(result.can_compare)

    def test_not_enough_photos(self):
        with self.assertRaises(ValueError) as ctx:
            build_comparison(ENTRIES[:1], "front")
        self.assertEqual(str(ctx.exception), NOT_ENOUGH_PHOTOS_MESSAGE)


if __name__ == "__main__":
    unittest.main()
