import unittest

from garage_api import database
from garage_api.models.outbox import OutboxEvent, OutboxStatus
from tests.base import GarageApiTestCase


class TestSideEffectIsolation(GarageApiTestCase):

    def setUp(self):
        super().setUp()
        self.technician, self.technician_token = self.create_user("technician")
        self.booking = self.create_inspecting_booking()

    def events(self, **params):
        response = self.get("/outbox/", token=self.admin, params=params)
        self.assertEqual(response.status_code, 200)
        return response.json()["events"]

    def test_failed_booking_sync_keeps_job_change(self):
        """A job status change survives a booking that can no longer be updated"""
        response = self.create_job(self.booking, self.technician)
        job = response.json()["job"]
        self.assertEqual(self.delete(f"/bookings/{self.booking['id']}", token=self.admin).status_code, 204)

        response = self.patch(f"/jobs/{job['id']}/status", {"status": "working"}, token=self.technician_token)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["job"]["status"], "working")

        events = self.events(kind="booking_sync")
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["status"], "failed")
        self.assertEqual(events[0]["attempts"], 1)
        self.assertIn("not found", events[0]["last_error"])

        retried = self.post(f"/outbox/{events[0]['id']}/retry", token=self.admin).json()["event"]
        self.assertEqual(retried["status"], "failed")
        self.assertEqual(retried["attempts"], 2)

    def test_unknown_material_is_reported_then_retried(self):
        """The job is kept when a goods request cannot be raised, and the request can be retried"""
        response = self.create_job(self.booking, self.technician, materials=[
            {"item_id": "ITM00001", "requested_quantity": 3},
        ])
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertEqual(data["goods_requests"], [])
        self.assertEqual(len(data["goods_request_errors"]), 1)
        self.assertTrue(data["goods_request_errors"][0].startswith("ITM00001"))
        job = data["job"]

        item = self.create_item(current_stock=10)
        self.assertEqual(item["item_id"], "ITM00001")

        failed = self.events(kind="goods_request", status="failed")
        self.assertEqual(len(failed), 1)
        response = self.post(f"/outbox/{failed[0]['id']}/retry", token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["event"]["status"], "done")

        requests = self.get("/goods-requests/", token=self.admin, params={"job": job["id"]}).json()
        self.assertEqual(requests["count"], 1)
        self.assertEqual(requests["goods_requests"][0]["request_id"], f"GR-{job['id']}-1")
        self.assertEqual(requests["goods_requests"][0]["quantity"], 3)

        again = self.post(f"/outbox/{failed[0]['id']}/retry", token=self.admin)
        self.assertEqual(again.status_code, 400)

    def mark_failed(self, event_pk):
        async def mark():
            async with database.get_session_factory()() as session:
                event = await session.get(OutboxEvent, event_pk)
                event.status = OutboxStatus.FAILED
                await session.commit()
        self.client.portal.call(mark)

    def booking_now(self):
        return self.get(f"/bookings/{self.booking['id']}", token=self.admin).json()["booking"]

    def test_outdated_sync_is_skipped_on_retry(self):
        """Replaying an old job status never overwrites the booking's newer status"""
        job = self.create_job(self.booking, self.technician).json()["job"]
        self.patch(f"/jobs/{job['id']}/status", {"status": "working"}, token=self.technician_token)
        self.patch(f"/jobs/{job['id']}/status", {"status": "on_hold"}, token=self.technician_token)
        oldest = self.events(kind="booking_sync")[-1]
        self.assertEqual(oldest["payload"]["job_status"], "working")
        self.mark_failed(oldest["id"])
        notes = len(self.booking_now()["notes"])

        response = self.post(f"/outbox/{oldest['id']}/retry", token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertTrue(response.json()["message"].startswith("Event skipped"))
        self.assertEqual(response.json()["event"]["status"], "skipped")

        booking = self.booking_now()
        self.assertEqual(booking["status"], "on_hold")
        self.assertEqual(len(booking["notes"]), notes)
        self.assertEqual(self.post(f"/outbox/{oldest['id']}/retry", token=self.admin).status_code, 400)

    def test_sync_overtaken_by_another_job_is_skipped(self):
        first = self.create_job(self.booking, self.technician).json()["job"]
        second = self.create_job(self.booking, self.technician, title="Align wheels").json()["job"]
        self.patch(f"/jobs/{first['id']}/status", {"status": "working"}, token=self.technician_token)
        self.patch(f"/jobs/{second['id']}/status", {"status": "working"}, token=self.technician_token)
        self.patch(f"/jobs/{second['id']}/status", {"status": "on_hold"}, token=self.technician_token)

        event = [e for e in self.events(kind="booking_sync") if e["payload"]["job"] == first["id"]][0]
        self.mark_failed(event["id"])
        retried = self.post(f"/outbox/{event['id']}/retry", token=self.admin).json()["event"]
        self.assertEqual(retried["status"], "skipped")
        self.assertEqual(self.booking_now()["status"], "on_hold")

    def test_successful_effects_are_recorded(self):
        job = self.create_job(self.booking, self.technician).json()["job"]
        self.patch(f"/jobs/{job['id']}/status", {"status": "working"}, token=self.technician_token)
        events = self.events(kind="booking_sync")
        self.assertEqual([e["status"] for e in events], ["done"])
        self.assertEqual(events[0]["payload"]["booking_status"], "working")


if __name__ == "__main__":
    unittest.main()
