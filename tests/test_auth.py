import unittest

from tests.base import ApiTestCase


class AuthApiTests(ApiTestCase):
    def test_register_and_me(self):
        user = self.register()
        self.assertEqual(user["email"], "alice@example.com")
        self.assertFalse(user["blur_enabled"])
        self.assertNotIn("hashed_password", user)

        response = self.client.get("/auth/me", headers=self.login())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["username"], "alice")

    def test_duplicate_email_is_rejected(self):
        self.register()
        response = self.client.post(
            "/auth/register",
            json={"email": "alice@example.com", "username": "other", "password": self.password},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Registration failed")

    def test_short_password_is_rejected(self):
        response = self.client.post(
            "/auth/register",
            json={"email": "bob@example.com", "username": "bob", "password": "short"},
        )
        self.assertEqual(response.status_code, 422)

    def test_wrong_password(self):
        self.register()
        response = self.client.post(
            "/auth/login",
            json={"email": "alice@example.com", "password": "not-the-password"},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Invalid email or password")

    def test_missing_or_bad_token(self):
        self.assertEqual(self.client.get("/auth/me").status_code, 401)
        response = self.client.get("/auth/me", headers={"Authorization": "Bearer nope"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Could not validate credentials")


class PrivacyApiTests(ApiTestCase):
    def test_blur_preference(self):
        headers = self.signup()

        response = self.client.get("/auth/me/privacy", headers=headers)
        self.assertEqual(response.json(), {"blur_enabled": False})

        response = self.client.put("/auth/me/privacy", headers=headers, json={"blur_enabled": True})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"blur_enabled": True})

        response = self.client.post("/auth/me/privacy/toggle", headers=headers)
        self.assertEqual(response.json(), {"blur_enabled": False})

        self.assertFalse(self.client.get("/auth/me", headers=headers).json()["blur_enabled"])


if __name__ == "__main__":
    unittest.main()
