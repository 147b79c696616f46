import unittest

from garage_api.models.user import UserRole
from garage_api.policy import PERMISSIONS, is_allowed
from tests.base import GarageApiTestCase


class TestPermissionTable(unittest.TestCase):

    def test_work_log_is_technician_only(self):
        self.assertTrue(is_allowed("jobs.work_log", UserRole.TECHNICIAN))
        for role in UserRole:
            if role != UserRole.TECHNICIAN:
                self.assertFalse(is_allowed("jobs.work_log", role), role)

    def test_unknown_action_is_denied(self):
        self.assertFalse(is_allowed("jobs.teleport", UserRole.ADMIN))

    def test_admin_can_do_everything_but_log_work(self):
        denied = [action for action in PERMISSIONS if not is_allowed(action, UserRole.ADMIN)]
        self.assertEqual(sorted(denied), ["jobs.mine", "jobs.work_log"])


class TestRoleEnforcement(GarageApiTestCase):

    def test_customer_cannot_create_jobs(self):
        technician, _ = self.create_user("technician")
        booking = self.create_inspecting_booking()
        _, customer = self.create_user("customer")
        response = self.post(f"/jobs/booking/{booking['id']}", {
            "title": "Oil change",
            "assigned_technician": technician["id"],
        }, token=customer)
        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.json()["success"])

    def test_technician_cannot_manage_inventory(self):
        _, technician = self.create_user("technician")
        response = self.post("/inventory/", {
            "name": "Spark plug", "category": "parts", "unit": "piece", "unit_price": 4.5,
        }, token=technician)
        self.assertEqual(response.status_code, 403)

    def test_cashier_cannot_read_outbox(self):
        _, cashier = self.create_user("cashier")
        self.assertEqual(self.get("/outbox/", token=cashier).status_code, 403)

    def test_only_admin_creates_admins(self):
        _, manager = self.create_user("manager")
        response = self.post("/users/", {
            "username": "usurper",
            "email": "usurper@example.com",
            "password": "usurper-password",
            "role": "admin",
        }, token=manager)
        self.assertEqual(response.status_code, 403)

    def test_suspended_user_is_rejected(self):
        user, token = self.create_user("service_advisor")
        response = self.patch(f"/users/{user['id']}/status", {"status": "suspended"}, token=self.admin)
        self.assertEqual(response.status_code, 200)
        response = self.get("/bookings/", token=token)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "Account is not active")


if __name__ == "__main__":
    unittest.main()
