import unittest
from datetime import datetime, timezone

from garage_api.models.user import MembershipTier
from garage_api.services.directory import tier_for
from garage_api.utils import as_utc, format_identifier
from tests.base import GarageApiTestCase


class TestHelpers(unittest.TestCase):

    def test_format_identifier(self):
        self.assertEqual(format_identifier("JOB", 7), "JOB00007")
        self.assertEqual(format_identifier("BK", 123456), "BK123456")

    def test_as_utc_treats_naive_as_utc(self):
        naive = datetime(2026, 1, 1, 12, 0)
        self.assertEqual(as_utc(naive), datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
        self.assertIsNone(as_utc(None))

    def test_membership_tiers(self):
        self.assertEqual(tier_for(0), MembershipTier.BRONZE)
        self.assertEqual(tier_for(1000), MembershipTier.SILVER)
        self.assertEqual(tier_for(7500), MembershipTier.GOLD)
        self.assertEqual(tier_for(10000), MembershipTier.PLATINUM)


class TestSequences(GarageApiTestCase):

    def test_user_ids_are_sequential(self):
        first, _ = self.create_user("technician")
        second, _ = self.create_user("cashier")
        self.assertEqual(first["user_id"], "USR00002")
        self.assertEqual(second["user_id"], "USR00003")

    def test_loyalty_points_raise_tier(self):
        customer, _ = self.create_user("customer")
        response = self.patch(f"/users/{customer['id']}/loyalty-points", {"points": 1200}, token=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        user = response.json()["user"]
        self.assertEqual(user["loyalty_points"], 1200)
        self.assertEqual(user["membership_tier"], "silver")


if __name__ == "__main__":
    unittest.main()
