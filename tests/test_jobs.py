import unittest

from tests.base import GarageApiTestCase


class JobTestCase(GarageApiTestCase):

    def setUp(self):
        super().setUp()
        self.technician, self.technician_token = self.create_user("technician", specializations=["brakes"])
        self.booking = self.create_inspecting_booking()

    def new_job(self, **fields):
        response = self.create_job(self.booking, self.technician, **fields)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def set_status(self, job, status, token=None):
        return self.patch(f"/jobs/{job['id']}/status", {"status": status}, token=token or self.technician_token)

    def booking_now(self):
        return self.get(f"/bookings/{self.booking['id']}", token=self.admin).json()["booking"]


class TestJobCreation(JobTestCase):

    def test_create_job(self):
        data = self.new_job()
        job = data["job"]
        self.assertEqual(job["job_id"], "JOB00001")
        self.assertEqual(job["status"], "pending")
        self.assertEqual(job["booking"]["booking_id"], self.booking["booking_id"])
        self.assertEqual([l["id"] for l in job["labourers"]], [self.technician["id"]])
        self.assertEqual(job["assigned_labourers"][0]["hours_worked"], 0)
        self.assertEqual(data["goods_requests"], [])

    def test_booking_must_be_inspecting(self):
        """No job and no goods request for a booking that is not being inspected"""
        item = self.create_item(current_stock=10)
        pending = self.create_booking()
        response = self.create_job(pending, self.technician, materials=[
            {"item_id": item["item_id"], "requested_quantity": 2},
        ])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Booking must be in 'inspecting' status to create jobs")

        self.assertEqual(self.get("/jobs/", token=self.admin).json()["total"], 0)
        self.assertEqual(self.get("/goods-requests/", token=self.admin).json()["count"], 0)

    def test_materials_raise_goods_requests(self):
        """Each material line becomes a pending goods request; stock is untouched"""
        item = self.create_item(current_stock=10)
        data = self.new_job(materials=[{"item_id": item["item_id"], "requested_quantity": 2}])
        self.assertEqual(data["goods_request_errors"], [])
        self.assertEqual(len(data["goods_requests"]), 1)
        goods_request = data["goods_requests"][0]
        self.assertEqual(goods_request["quantity"], 2)
        self.assertEqual(goods_request["status"], "pending")
        self.assertEqual(goods_request["job_id"], data["job"]["id"])
        self.assertEqual(goods_request["item"]["item_id"], item["item_id"])

        stock = self.get(f"/inventory/{item['id']}", token=self.admin).json()["item"]["current_stock"]
        self.assertEqual(stock, 10)

    def test_accepts_camel_case_keys(self):
        """Job bodies may use camelCase keys, as the web client sends them"""
        item = self.create_item(current_stock=10)
        response = self.post(f"/jobs/booking/{self.booking['id']}", {
            "title": "Brake service",
            "assignedTechnician": self.technician["id"],
            "estimatedHours": 2,
            "requirements": {"materials": [{"itemId": item["item_id"], "requestedQuantity": 2}]},
        }, token=self.admin)
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertEqual(data["job"]["status"], "pending")
        self.assertEqual(data["job"]["estimated_hours"], 2)
        self.assertEqual([l["id"] for l in data["job"]["labourers"]], [self.technician["id"]])
        self.assertEqual(
            data["job"]["requirements"]["materials"],
            [{"item_id": item["item_id"], "requested_quantity": 2}],
        )
        self.assertEqual(len(data["goods_requests"]), 1)
        self.assertEqual(data["goods_requests"][0]["quantity"], 2)
        self.assertEqual(data["goods_requests"][0]["item"]["item_id"], item["item_id"])

    def test_labourers_must_be_active_technicians(self):
        advisor, _ = self.create_user("service_advisor")
        response = self.post(f"/jobs/booking/{self.booking['id']}", {
            "title": "Diagnostics",
            "assigned_labourers": [self.technician["id"], advisor["id"]],
        }, token=self.admin)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Some labourers not found or not active technicians")


class TestJobStatus(JobTestCase):

    def test_technician_cannot_skip_working(self):
        job = self.new_job()["job"]
        response = self.set_status(job, "completed")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid status transition from pending to completed")

    def test_unassigned_technician_is_refused(self):
        job = self.new_job()["job"]
        _, other = self.create_user("technician")
        self.assertEqual(self.set_status(job, "working", token=other).status_code, 403)

    def test_lifecycle_sets_timestamps_and_syncs_booking(self):
        job = self.new_job()["job"]

        working = self.set_status(job, "working").json()["job"]
        self.assertIsNotNone(working["started_at"])
        self.assertIsNone(working["completed_at"])
        self.assertEqual(self.booking_now()["status"], "working")

        completed = self.set_status(job, "completed").json()["job"]
        self.assertEqual(completed["started_at"], working["started_at"])
        self.assertIsNotNone(completed["completed_at"])

        booking = self.booking_now()
        self.assertEqual(booking["status"], "completed")
        notes = [n for n in booking["notes"] if n["job"] == job["job_id"] and n["status"] == "completed"]
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0]["text"], f"Status changed to completed by job {job['job_id']}")

    def test_timestamps_are_set_once(self):
        job = self.new_job()["job"]
        first = self.set_status(job, "working").json()["job"]
        done = self.set_status(job, "completed").json()["job"]

        # Staff may reopen a job; the original timestamps stay.
        self.assertEqual(self.set_status(job, "working", token=self.admin).status_code, 200)
        again = self.set_status(job, "completed", token=self.admin).json()["job"]
        self.assertEqual(again["started_at"], first["started_at"])
        self.assertEqual(again["completed_at"], done["completed_at"])

    def test_pending_does_not_touch_booking(self):
        job = self.new_job()["job"]
        self.set_status(job, "working")
        self.set_status(job, "pending", token=self.admin)
        self.assertEqual(self.booking_now()["status"], "working")

    def test_hold_and_resume_follow_on_booking(self):
        """Each job status change is mirrored on the booking with one note"""
        job = self.new_job()["job"]
        notes = len(self.booking_now()["notes"])

        for status in ("working", "on_hold", "working"):
            response = self.set_status(job, status)
            self.assertEqual(response.status_code, 200, response.text)
            booking = self.booking_now()
            self.assertEqual(booking["status"], status)
            notes += 1
            self.assertEqual(len(booking["notes"]), notes)
            self.assertEqual(booking["notes"][-1]["text"], f"Status changed to {status} by job {job['job_id']}")

    def test_only_staff_cancel(self):
        job = self.new_job()["job"]
        self.set_status(job, "working")
        response = self.set_status(job, "cancelled")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid status transition from working to cancelled")
        self.assertEqual(self.booking_now()["status"], "working")

        notes = len(self.booking_now()["notes"])
        response = self.set_status(job, "cancelled", token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        booking = self.booking_now()
        self.assertEqual(booking["status"], "cancelled")
        self.assertEqual(len(booking["notes"]), notes + 1)
        self.assertEqual(booking["notes"][-1]["status"], "cancelled")

    def test_cannot_delete_started_job(self):
        job = self.new_job()["job"]
        self.set_status(job, "working")
        response = self.delete(f"/jobs/{job['id']}", token=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_delete_pending_job(self):
        job = self.new_job()["job"]
        response = self.delete(f"/jobs/{job['id']}", token=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["job"]["job_id"], job["job_id"])
        self.assertEqual(self.get(f"/jobs/{job['id']}", token=self.admin).status_code, 404)

    def test_deleted_job_releases_goods_requests(self):
        item = self.create_item(current_stock=10)
        data = self.new_job(materials=[{"item_id": item["item_id"], "requested_quantity": 1}])
        request_pk = data["goods_requests"][0]["id"]
        self.assertEqual(self.delete(f"/jobs/{data['job']['id']}", token=self.admin).status_code, 200)

        response = self.get(f"/goods-requests/{request_pk}", token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertIsNone(response.json()["goods_request"]["job_id"])


class TestWorkLog(JobTestCase):

    def log(self, job, start, end, token=None):
        return self.post(f"/jobs/{job['id']}/worklog", {
            "start_time": start, "end_time": end, "description": "Pads and discs",
        }, token=token or self.technician_token)

    def test_hours_add_up(self):
        """Job and labourer hours both equal the sum of the work log"""
        job = self.new_job()["job"]
        self.assertEqual(self.log(job, "2026-03-02T09:00:00Z", "2026-03-02T11:00:00Z").status_code, 201)
        job = self.log(job, "2026-03-02T13:00:00Z", "2026-03-02T14:30:00Z").json()["job"]

        self.assertEqual(len(job["work_log"]), 2)
        self.assertEqual(job["actual_hours"], 3.5)
        self.assertEqual(sum(e["hours_worked"] for e in job["work_log"]), 3.5)
        self.assertEqual(job["assigned_labourers"][0]["hours_worked"], 3.5)

    def test_accepts_camel_case_times(self):
        job = self.new_job()["job"]
        response = self.post(f"/jobs/{job['id']}/worklog", {
            "startTime": "2026-03-02T09:00:00Z", "endTime": "2026-03-02T10:30:00Z",
        }, token=self.technician_token)
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["job"]["actual_hours"], 1.5)

    def test_end_must_follow_start(self):
        job = self.new_job()["job"]
        response = self.log(job, "2026-03-02T11:00:00Z", "2026-03-02T09:00:00Z")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "End time must be after start time")

    def test_only_assigned_technicians_log_work(self):
        job = self.new_job()["job"]
        _, other = self.create_user("technician")
        self.assertEqual(self.log(job, "2026-03-02T09:00:00Z", "2026-03-02T10:00:00Z", token=other).status_code, 403)
        self.assertEqual(self.log(job, "2026-03-02T09:00:00Z", "2026-03-02T10:00:00Z", token=self.admin).status_code, 403)


class TestInspection(JobTestCase):

    def test_post_work_requires_completed_job(self):
        job = self.new_job()["job"]
        response = self.post(f"/jobs/{job['id']}/inspection", {"type": "post", "approved": True}, token=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_pre_and_post_work_reports(self):
        job = self.new_job()["job"]
        response = self.post(f"/jobs/{job['id']}/inspection", {
            "type": "preWork", "condition": "Worn pads", "issues": ["squeal"],
        }, token=self.admin)
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["job"]["inspection_report"]["pre_work"]["condition"], "Worn pads")

        self.set_status(job, "working")
        self.set_status(job, "completed")
        response = self.post(f"/jobs/{job['id']}/inspection", {
            "type": "post", "qualityRating": 5, "approved": True,
        }, token=self.admin)
        self.assertEqual(response.status_code, 201, response.text)
        job = response.json()["job"]
        self.assertTrue(job["inspection_report"]["post_work"]["approved"])
        self.assertEqual(job["inspection_report"]["post_work"]["quality_rating"], 5)
        self.assertIsNotNone(job["approved_at"])

    def test_unknown_inspection_type(self):
        job = self.new_job()["job"]
        response = self.post(f"/jobs/{job['id']}/inspection", {"type": "midway"}, token=self.admin)
        self.assertEqual(response.status_code, 400)


class TestJobQueries(JobTestCase):

    def test_technician_sees_only_assigned_jobs(self):
        self.new_job(title="Mine")
        other, _ = self.create_user("technician")
        self.create_job(self.booking, other, title="Theirs")

        listing = self.get("/jobs/my-jobs", token=self.technician_token).json()
        self.assertEqual([j["title"] for j in listing["jobs"]], ["Mine"])
        everything = self.get("/jobs/", token=self.technician_token).json()
        self.assertEqual(everything["total"], 1)
        self.assertEqual(self.get("/jobs/", token=self.admin).json()["total"], 2)

    def test_my_created_jobs_include_stats(self):
        self.new_job(category="brakes")
        self.new_job(category="engine", priority="high")
        data = self.get("/jobs/my-created", token=self.admin).json()
        self.assertEqual(data["total"], 2)
        self.assertEqual(data["stats"]["by_category"], {"brakes": 1, "engine": 1})

    def test_job_stats(self):
        job = self.new_job()["job"]
        self.set_status(job, "working")
        self.set_status(job, "completed")
        stats = self.get("/jobs/stats", token=self.admin).json()["stats"]
        self.assertEqual(stats["total"], 1)
        self.assertEqual(stats["completion"]["total_jobs"], 1)

    def test_reassign_labourers_requires_skill(self):
        job = self.new_job()["job"]
        self.patch(f"/jobs/{job['id']}", {"requirements": {"skills": ["electrical"]}}, token=self.admin)
        response = self.put(f"/jobs/{job['id']}/labourers", {"labourer_ids": [self.technician["id"]]}, token=self.admin)
        self.assertEqual(response.status_code, 400)

        electrician, _ = self.create_user("technician", specializations=["electrical"])
        response = self.put(f"/jobs/{job['id']}/labourers", {"labourer_ids": [electrician["id"]]}, token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["job"]["labourers"][0]["id"], electrician["id"])


if __name__ == "__main__":
    unittest.main()
