import unittest

from tests.base import API, GarageApiTestCase


class TestAuthentication(GarageApiTestCase):

    def test_health_check(self):
        """Health endpoint is public"""
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_admin_login(self):
        """Bootstrap admin can log in and read its own account"""
        response = self.get("/auth/me", token=self.admin)
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["username"], "admin")
        self.assertEqual(user["role"], "admin")
        self.assertEqual(user["user_id"], "USR00001")

    def test_register_customer(self):
        """Public registration always creates a customer"""
        response = self.client.post(f"{API}/auth/register", json={
            "username": "jane",
            "email": "jane@example.com",
            "password": "jane-password",
            "first_name": "Jane",
        })
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertIn("access_token", data)
        self.assertEqual(data["user"]["role"], "customer")

        duplicate = self.client.post(f"{API}/auth/register", json={
            "username": "jane",
            "email": "other@example.com",
            "password": "jane-password",
        })
        self.assertEqual(duplicate.status_code, 400)
        self.assertFalse(duplicate.json()["success"])

    def test_wrong_password(self):
        response = self.client.post(f"{API}/auth/login", json={"username": "admin", "password": "nope"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"success": False, "error": "Invalid credentials"})

    def test_missing_token(self):
        response = self.get("/auth/me")
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_lockout_after_repeated_failures(self):
        """Five failures lock the account, even against the right password"""
        self.create_user("technician", username="locksmith", password="right-password")
        for _ in range(5):
            response = self.client.post(f"{API}/auth/login", json={"username": "locksmith", "password": "wrong"})
            self.assertEqual(response.status_code, 401)

        response = self.client.post(f"{API}/auth/login", json={"username": "locksmith", "password": "right-password"})
        self.assertEqual(response.status_code, 423)

    def test_login_by_email(self):
        self.create_user("cashier", username="till", password="till-password")
        token = self.login("till@example.com", "till-password")
        self.assertEqual(self.get("/auth/me", token=token).json()["user"]["username"], "till")

    def test_deleted_user_cannot_log_in(self):
        """Soft-deleted users are terminated and rejected"""
        user, token = self.create_user("technician", username="leaver", password="leaver-password")
        response = self.delete(f"/users/{user['id']}", token=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["status"], "terminated")

        self.assertEqual(self.get("/auth/me", token=token).status_code, 401)
        response = self.client.post(f"{API}/auth/login", json={"username": "leaver", "password": "leaver-password"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.get(f"/users/{user['id']}", token=self.admin).status_code, 404)

    def test_cannot_delete_self(self):
        me = self.get("/auth/me", token=self.admin).json()["user"]
        response = self.delete(f"/users/{me['id']}", token=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_change_password(self):
        self.create_user("manager", username="boss", password="first-password")
        token = self.login("boss", "first-password")
        response = self.patch("/users/change-password", {
            "current_password": "first-password",
            "new_password": "second-password",
        }, token=token)
        self.assertEqual(response.status_code, 200)
        self.login("boss", "second-password")


if __name__ == "__main__":
    unittest.main()
