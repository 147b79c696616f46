import unittest

from tests.base import GarageApiTestCase


class TestGoodsRequests(GarageApiTestCase):

    def setUp(self):
        super().setUp()
        self.technician, self.technician_token = self.create_user("technician")
        self.booking = self.create_inspecting_booking()
        self.item = self.create_item(current_stock=10)

    def raise_request(self, quantity):
        response = self.create_job(self.booking, self.technician, materials=[
            {"item_id": self.item["item_id"], "requested_quantity": quantity},
        ])
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["goods_requests"][0]

    def stock(self):
        return self.get(f"/inventory/{self.item['id']}", token=self.admin).json()["item"]["current_stock"]

    def test_fulfil_takes_stock(self):
        goods_request = self.raise_request(4)
        response = self.patch(f"/goods-requests/{goods_request['id']}/fulfill", {}, token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["goods_request"]["status"], "fulfilled")
        self.assertEqual(self.stock(), 6)

        again = self.patch(f"/goods-requests/{goods_request['id']}/fulfill", {}, token=self.admin)
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()["error"], "Goods request is already fulfilled")
        self.assertEqual(self.stock(), 6)

    def test_fulfil_beyond_stock_leaves_request_pending(self):
        goods_request = self.raise_request(20)
        response = self.patch(f"/goods-requests/{goods_request['id']}/fulfill", {}, token=self.admin)
        self.assertEqual(response.status_code, 400)
        self.assertIn("Insufficient stock", response.json()["error"])

        current = self.get(f"/goods-requests/{goods_request['id']}", token=self.admin).json()["goods_request"]
        self.assertEqual(current["status"], "pending")
        self.assertEqual(self.stock(), 10)

    def test_reject(self):
        goods_request = self.raise_request(1)
        response = self.patch(f"/goods-requests/{goods_request['id']}/reject", {"notes": "Use stock on van"}, token=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["goods_request"]["status"], "rejected")
        self.assertEqual(self.stock(), 10)

    def test_technician_cannot_fulfil(self):
        goods_request = self.raise_request(1)
        response = self.patch(f"/goods-requests/{goods_request['id']}/fulfill", {}, token=self.technician_token)
        self.assertEqual(response.status_code, 403)

    def test_technician_sees_own_requests(self):
        self.raise_request(1)
        other, other_token = self.create_user("technician")
        self.assertEqual(self.get("/goods-requests/", token=self.technician_token).json()["count"], 1)
        self.assertEqual(self.get("/goods-requests/", token=other_token).json()["count"], 0)


if __name__ == "__main__":
    unittest.main()
