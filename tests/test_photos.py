import unittest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from fitsnap.main import app
from fitsnap.services.photo import PhotoService, get_today_date, today_utc
from tests.base import ApiTestCase


class PhotoUploadTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.signup()

    def test_upload_front_then_back_merges(self):
        response = self.upload(self.headers, "2024-03-01", "front")
        self.assertEqual(response.status_code, 201, response.text)
        body = response.json()
        self.assertEqual(body["side"], "front")
        self.assertEqual(body["entry"]["photo_count"], 1)
        self.assertEqual(body["entry"]["front_photo_url"], "/photos/2024-03-01/front/image")
        self.assertIsNone(body["entry"]["back_photo_url"])

        response = self.upload(self.headers, "2024-03-01", "back")
        self.assertEqual(response.status_code, 201)

        entry = self.client.get("/photos/2024-03-01", headers=self.headers).json()
        self.assertEqual(entry["photo_count"], 2)
        self.assertEqual(entry["back_photo_url"], "/photos/2024-03-01/back/image")
        self.assertIn("photos/1/2024-03-01/front.jpg", self.storage.objects)
        self.assertIn("photos/1/2024-03-01/back.jpg", self.storage.objects)

    def test_reupload_replaces_side(self):
        self.upload(self.headers, "2024-03-01", "front", content=b"first")
        self.upload(self.headers, "2024-03-01", "front", content=b"second")
        response = self.client.get("/photos/2024-03-01/front/image", headers=self.headers)
        self.assertEqual(response.content, b"second")

    def test_future_date_is_rejected(self):
        response = self.upload(self.headers, "2999-01-01")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Cannot upload photos for future dates")

    def test_today_is_allowed(self):
        today = today_utc().isoformat()
        self.assertEqual(self.upload(self.headers, today).status_code, 201)

        response = self.client.get("/photos/today", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["date"], today)
        self.assertEqual(response.json()["entry"]["photo_count"], 1)

    def test_today_without_entry(self):
        response = self.client.get("/photos/today", headers=self.headers)
        self.assertIsNone(response.json()["entry"])

    def test_today_uses_utc_date_string(self):
        self.upload(self.headers, "2024-03-01")
        with patch("fitsnap.routers.photos.get_today_date", return_value="2024-03-01"):
            body = self.client.get("/photos/today", headers=self.headers).json()
        self.assertEqual(body["date"], "2024-03-01")
        self.assertEqual(body["entry"]["date"], "2024-03-01")
        self.assertEqual(get_today_date(), today_utc().isoformat())

    def test_invalid_dates(self):
        for day in ("2024-13-01", "2024-02-30", "20240301"):
            response = self.upload(self.headers, day)
            self.assertEqual(response.status_code, 400, day)
            self.assertEqual(response.json()["detail"], "Invalid date format. Use YYYY-MM-DD")

    def test_invalid_side(self):
        response = self.upload(self.headers, "2024-03-01", "left")
        self.assertEqual(response.status_code, 422)

    def test_disallowed_file_type(self):
        response = self.upload(
            self.headers, "2024-03-01", content=b"hello", filename="notes.txt", content_type="text/plain"
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("File type not allowed", response.json()["detail"])

    def test_content_type_from_extension(self):
        response = self.upload(
            self.headers,
            "2024-03-01",
            filename="photo.png",
            content_type="application/octet-stream",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["content_type"], "image/png")

    def test_file_too_large(self):
        with patch("fitsnap.routers.photos.max_file_size", return_value=4):
            response = self.upload(self.headers, "2024-03-01", content=b"12345")
        self.assertEqual(response.status_code, 413)

    def test_storage_failure(self):
        self.storage.fail_uploads = True
        response = self.upload(self.headers, "2024-03-01")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], "Failed to upload photo. Please try again.")
        self.assertEqual(self.client.get("/photos", headers=self.headers).json(), [])

    def test_requires_auth(self):
        response = self.upload({}, "2024-03-01")
        self.assertEqual(response.status_code, 401)


class PhotoReadDeleteTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.signup()

    def test_list_is_newest_first(self):
        for day in ("2024-03-01", "2024-03-03", "2024-03-02"):
            self.upload(self.headers, day)
        dates = [e["date"] for e in self.client.get("/photos", headers=self.headers).json()]
        self.assertEqual(dates, ["2024-03-03", "2024-03-02", "2024-03-01"])

    def test_missing_entry(self):
        response = self.client.get("/photos/2024-03-01", headers=self.headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Photo entry not found")

    def test_image_streams_stored_content_type(self):
        self.upload(self.headers, "2024-03-01", content=b"png-bytes", filename="a.png", content_type="image/png")
        response = self.client.get("/photos/2024-03-01/front/image", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"png-bytes")
        self.assertEqual(response.headers["content-type"], "image/png")
        self.assertEqual(response.headers["cache-control"], "private, max-age=60")

    def test_image_missing_from_storage_is_not_found(self):
        self.upload(self.headers, "2024-03-01")
        del self.storage.objects["photos/1/2024-03-01/front.jpg"]
        response = self.client.get("/photos/2024-03-01/front/image", headers=self.headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Photo not found")

    def test_image_storage_outage_is_server_error(self):
        self.upload(self.headers, "2024-03-01")
        self.storage.fail_downloads = True
        response = self.client.get("/photos/2024-03-01/front/image", headers=self.headers)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], "Failed to load photo")

    def test_image_redirects_when_presigned_enabled(self):
        self.upload(self.headers, "2024-03-01")
        with patch.object(PhotoService, "presigned_image_url", return_value="https://storage.example.com/x"):
            response = self.client.get(
                "/photos/2024-03-01/front/image",
                headers=self.headers,
                follow_redirects=False,
            )
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers["location"], "https://storage.example.com/x")

    def test_other_users_cannot_read_images(self):
        self.upload(self.headers, "2024-03-01")
        other = self.signup("bob@example.com", "bob")
        response = self.client.get("/photos/2024-03-01/front/image", headers=other)
        self.assertEqual(response.status_code, 404)

    def test_delete_sides(self):
        self.upload(self.headers, "2024-03-01", "front")
        self.upload(self.headers, "2024-03-01", "back")

        response = self.client.delete("/photos/2024-03-01/front", headers=self.headers)
        self.assertEqual(response.status_code, 204)
        entry = self.client.get("/photos/2024-03-01", headers=self.headers).json()
        self.assertEqual(entry["photo_count"], 1)
        self.assertIsNone(entry["front_photo_url"])
        self.assertNotIn("photos/1/2024-03-01/front.jpg", self.storage.objects)

        self.client.delete("/photos/2024-03-01/back", headers=self.headers)
        response = self.client.get("/photos/2024-03-01", headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_delete_missing_side(self):
        self.upload(self.headers, "2024-03-01", "front")
        response = self.client.delete("/photos/2024-03-01/back", headers=self.headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Photo not found")


class GalleryApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.signup()

    def test_heatmap(self):
        self.upload(self.headers, "2024-03-01", "front")
        self.upload(self.headers, "2024-03-01", "back")

        response = self.client.get("/photos/heatmap", headers=self.headers, params={"year": 2024})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["year"], 2024)
        self.assertEqual(body["weeks"], 53)
        self.assertIsNone(body["grid"][0][0])
        self.assertEqual(body["grid"][1][0]["date"], "2024-01-01")
        self.assertEqual(body["workout_days"], 1)

        this_year = today_utc().year
        self.assertIn(this_year, body["years"])
        self.assertIn(this_year - 1, body["years"])
        self.assertIn(2024, body["years"])

        cells = {c["date"]: c for row in body["grid"] for c in row if c}
        self.assertEqual(cells["2024-03-01"]["level"], 2)
        self.assertEqual(cells["2024-03-01"]["tooltip"], "2024-03-01: 2 photos (Front, Back)")

    def test_heatmap_accepts_year_bounds(self):
        for year in (1970, 9999):
            response = self.client.get("/photos/heatmap", headers=self.headers, params={"year": year})
            self.assertEqual(response.status_code, 200, year)
            self.assertEqual(response.json()["year"], year)

    def test_carousel(self):
        for day in ("2024-03-01", "2024-03-02", "2024-03-03"):
            self.upload(self.headers, day)

        body = self.client.get("/photos/carousel", headers=self.headers).json()
        self.assertEqual(body["total"], 3)
        self.assertEqual(body["slide"]["entry"]["date"], "2024-03-03")

        body = self.client.get("/photos/carousel", headers=self.headers, params={"index": 10}).json()
        self.assertEqual(body["slide"]["index"], 2)
        self.assertFalse(body["slide"]["has_next"])

    def test_compare_needs_two_photos(self):
        self.upload(self.headers, "2024-03-01")
        response = self.client.get("/photos/compare", headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "You need at least 2 photos to compare progress.")

    def test_compare(self):
        self.upload(self.headers, "2024-03-01")
        self.upload(self.headers, "2024-04-01")
        body = self.client.get("/photos/compare", headers=self.headers, params={"side": "front"}).json()
        self.assertEqual(body["before"]["date"], "2024-03-01")
        self.assertEqual(body["after"]["date"], "2024-04-01")
        self.assertTrue(body["can_compare"])

    def test_compare_rejects_bad_date(self):
        response = self.client.get("/photos/compare", headers=self.headers, params={"before": "March"})
        self.assertEqual(response.status_code, 400)


class UnhandledErrorTests(ApiTestCase):
    def test_global_handler_returns_request_id(self):
        headers = self.signup()
        client = TestClient(app, raise_server_exceptions=False)
        with patch.object(
            PhotoService,
            "get_all_photo_entries",
            new=AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = client.get("/photos", headers={**headers, "X-Request-ID": "rid-boom-42"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"detail": "Internal server error", "request_id": "rid-boom-42"},
        )
        self.assertEqual(response.headers["X-Request-ID"], "rid-boom-42")

    def test_global_handler_generates_request_id(self):
        headers = self.signup()
        client = TestClient(app, raise_server_exceptions=False)
        with patch.object(
            PhotoService,
            "get_all_photo_entries",
            new=AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = client.get("/photos", headers=headers)
        rid = response.json()["request_id"]
        self.assertIsInstance(rid, str)
        self.assertEqual(len(rid), 12)
        self.assertEqual(response.headers["X-Request-ID"], rid)


if __name__ == "__main__":
    unittest.main()
