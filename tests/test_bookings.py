import unittest

from tests.base import API, GarageApiTestCase


class TestBookings(GarageApiTestCase):

    def register(self, username):
        response = self.client.post(f"{API}/auth/register", json={
            "username": username,
            "email": f"{username}@example.com",
            "password": "customer-password",
        })
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["user"], response.json()["access_token"]

    def test_customer_books_for_self(self):
        customer, token = self.register("alice")
        response = self.post("/bookings/", {"service_type": "Oil change"}, token=token)
        self.assertEqual(response.status_code, 201, response.text)
        booking = response.json()["booking"]
        self.assertEqual(booking["customer_id"], customer["id"])
        self.assertEqual(booking["status"], "pending")
        self.assertEqual(booking["booking_id"], "BK00001")

    def test_customers_only_see_their_own(self):
        _, alice = self.register("alice")
        _, bob = self.register("bob")
        booking = self.post("/bookings/", {"service_type": "Tyres"}, token=alice).json()["booking"]

        self.assertEqual(self.get(f"/bookings/{booking['id']}", token=bob).status_code, 403)
        self.assertEqual(self.get("/bookings/", token=bob).json()["total"], 0)
        self.assertEqual(self.get("/bookings/", token=alice).json()["total"], 1)

    def test_staff_must_name_customer(self):
        response = self.post("/bookings/", {"service_type": "Tyres"}, token=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_status_follows_workflow(self):
        booking = self.create_booking()
        response = self.patch(f"/bookings/{booking['id']}/status", {"status": "completed"}, token=self.admin)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid status transition from pending to completed")

        response = self.patch(f"/bookings/{booking['id']}/status", {"status": "cancelled", "note": "No show"}, token=self.admin)
        self.assertEqual(response.status_code, 200)
        booking = response.json()["booking"]
        self.assertEqual(booking["status"], "cancelled")
        self.assertEqual(booking["notes"][-1]["text"], "Status changed to cancelled: No show")

        response = self.patch(f"/bookings/{booking['id']}/status", {"status": "pending"}, token=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_assigning_inspector_starts_inspection(self):
        advisor, _ = self.create_user("service_advisor")
        booking = self.create_inspecting_booking(advisor)
        self.assertEqual(booking["status"], "inspecting")
        self.assertEqual(booking["inspector_id"], advisor["id"])

    def test_technician_cannot_inspect(self):
        technician, _ = self.create_user("technician")
        booking = self.create_booking()
        response = self.patch(f"/bookings/{booking['id']}/inspector", {"inspector_id": technician["id"]}, token=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_customer_cannot_change_status(self):
        _, token = self.register("carol")
        booking = self.post("/bookings/", {"service_type": "Tyres"}, token=token).json()["booking"]
        response = self.patch(f"/bookings/{booking['id']}/status", {"status": "cancelled"}, token=token)
        self.assertEqual(response.status_code, 403)

    def test_vehicle_must_belong_to_customer(self):
        _, alice = self.register("alice")
        _, bob = self.register("bob")
        vehicle = self.post("/vehicles/", {
            "registration_number": "cab-1234", "make": "Toyota", "model": "Corolla",
        }, token=alice).json()["vehicle"]
        self.assertEqual(vehicle["registration_number"], "CAB-1234")

        response = self.post("/bookings/", {"service_type": "Tyres", "vehicle_id": vehicle["id"]}, token=bob)
        self.assertEqual(response.status_code, 400)
        response = self.post("/bookings/", {"service_type": "Tyres", "vehicle_id": vehicle["id"]}, token=alice)
        self.assertEqual(response.status_code, 201)


if __name__ == "__main__":
    unittest.main()
