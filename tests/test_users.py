import unittest

from tests.base import API, GarageApiTestCase


class TestCustomerIntake(GarageApiTestCase):

    def walk_in(self, token=None, **fields):
        payload = {
            "email": "walkin@example.com",
            "firstName": "Nimal",
            "lastName": "Perera",
            "phoneNumber": "0771234567",
            "nic": "199012345678",
            **fields,
        }
        return self.post("/users/register-customer", payload, token=token or self.admin)

    def test_register_walk_in_customer(self):
        """A new walk-in gets a customer account and a temporary password"""
        _, cashier = self.create_user("cashier")
        response = self.walk_in(token=cashier)
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertFalse(data["is_existing"])
        self.assertEqual(data["user"]["role"], "customer")
        self.assertEqual(data["user"]["nic"], "199012345678")
        self.assertEqual(data["user"]["username"], data["user"]["user_id"].lower())

        token = self.login(data["user"]["username"], data["temp_password"])
        self.assertEqual(self.get("/auth/me", token=token).json()["user"]["email"], "walkin@example.com")

    def test_known_customer_is_returned(self):
        first = self.walk_in().json()["user"]
        response = self.walk_in(email="someone-else@example.com")
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertTrue(data["is_existing"])
        self.assertIsNone(data["temp_password"])
        self.assertEqual(data["user"]["id"], first["id"])

    def test_staff_details_are_not_reused(self):
        self.create_user("technician", username="mechanic", nic="198800000000")
        response = self.walk_in(nic="198800000000")
        self.assertEqual(response.status_code, 400)

    def test_missing_details_are_rejected(self):
        response = self.post("/users/register-customer", {"email": "x@example.com"}, token=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_search_by_email_or_nic(self):
        customer = self.walk_in().json()["user"]
        for q in ("WALKIN@example.com", "199012345678"):
            response = self.get("/users/search", token=self.admin, params={"q": q})
            self.assertEqual(response.status_code, 200, response.text)
            self.assertEqual(response.json()["user"]["id"], customer["id"])

        self.assertEqual(self.get("/users/search", token=self.admin, params={"q": "nobody"}).status_code, 404)
        self.assertEqual(self.get("/users/search", token=self.admin).status_code, 400)

    def test_search_only_finds_customers(self):
        self.create_user("technician", username="fixer", nic="197700000000")
        response = self.get("/users/search", token=self.admin, params={"q": "197700000000"})
        self.assertEqual(response.status_code, 404)

    def test_lookup_by_nic(self):
        technician, _ = self.create_user("technician", nic="197700000000")
        response = self.get("/users/lookup/by-nic", token=self.admin, params={"nic": "197700000000"})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["user"]["id"], technician["id"])

        response = self.get("/users/lookup/by-nic", token=self.admin, params={"nic": "000"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "User with this NIC not found")

    def test_customers_cannot_look_up_others(self):
        _, customer = self.create_user("customer")
        self.assertEqual(self.get("/users/search", token=customer, params={"q": "x"}).status_code, 403)
        self.assertEqual(self.walk_in(token=customer).status_code, 403)


class TestUserAdministration(GarageApiTestCase):

    def test_reset_password_unlocks_account(self):
        user, _ = self.create_user("technician", username="forgetful", password="old-password")
        for _ in range(5):
            self.client.post(f"{API}/auth/login", json={"username": "forgetful", "password": "wrong"})
        response = self.client.post(f"{API}/auth/login", json={"username": "forgetful", "password": "old-password"})
        self.assertEqual(response.status_code, 423)

        response = self.patch(f"/users/{user['id']}/reset-password", {"newPassword": "new-password"}, token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["message"], "Password reset successfully")
        self.login("forgetful", "new-password")

    def test_reset_password_is_management_only(self):
        user, _ = self.create_user("technician")
        _, advisor = self.create_user("service_advisor")
        response = self.patch(f"/users/{user['id']}/reset-password", {"new_password": "new-password"}, token=advisor)
        self.assertEqual(response.status_code, 403)

    def test_user_stats(self):
        self.create_user("technician", department="workshop")
        self.create_user("technician", department="workshop")
        self.create_user("customer")
        response = self.get("/users/stats/overview", token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        stats = response.json()["stats"]
        self.assertEqual(stats["total_users"], 4)
        self.assertEqual(stats["active_users"], 4)
        self.assertEqual(stats["by_role"], {"admin": 1, "technician": 2, "customer": 1})
        self.assertEqual(stats["by_department"], {"workshop": 2})
        self.assertEqual(stats["by_membership_tier"], {"bronze": 1})
        self.assertEqual(sum(stats["recent_registrations"].values()), 4)


if __name__ == "__main__":
    unittest.main()
