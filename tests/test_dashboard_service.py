import unittest
from datetime import timedelta
from unittest import mock

from sqlalchemy.exc import OperationalError

from app.core.dates import utcnow
from app.core.exceptions import ValidationError
from app.services.dashboard_service import (
    get_dashboard_summary,
    get_future_predictions,
    get_inventory_summary,
    get_usage_statistics,
)
from app.services.stats_service import record_monthly_usage
from app.services.usage_service import record_usage
from tests.support import SalonTestCase


class DashboardServiceTest(SalonTestCase):
    def setUp(self):
        super().setUp()
        self.color = self.make_product(quantity=3, start=1, name="Rose Nude")
        self.remover = self.make_product(
            quantity=1, start=1, capacity=1.0, category="GEL_REMOVER", name="Remover"
        )
        self.service = self.make_service_type()

    def _use(self, product, amount=None, nail_length="MEDIUM", when=None):
        return record_usage(
            self.db,
            self.store.id,
            product_id=product.id,
            service_type_id=self.service.id,
            nail_length=nail_length,
            user_id=self.tech.id,
            usage_amount=amount,
            is_custom_amount=amount is not None,
            date=when,
        )

    def test_summary_counts(self):
        self._use(self.color)
        self._use(self.color, nail_length="LONG")

        summary = get_dashboard_summary(self.db, self.store.id)

        self.assertEqual(summary["total_products"], 2)
        self.assertEqual(summary["total_service_types"], 1)
        self.assertEqual(summary["total_usage_records"], 2)
        # Remover has no unopened lots left.
        self.assertEqual(summary["low_stock_count"], 1)
        self.assertEqual(summary["recent_activity"][0]["category"], "USAGE")

    def test_inventory_summary(self):
        self._use(self.remover, amount=0.2)

        summary = get_inventory_summary(self.db, self.store.id)

        self.assertEqual(summary["total_products"], 2)
        self.assertEqual(
            summary["category_breakdown"],
            [{"category": "GEL_COLOR", "count": 1}, {"category": "GEL_REMOVER", "count": 1}],
        )
        self.assertEqual([p["id"] for p in summary["low_stock_products"]], [self.remover.id])
        self.assertEqual([p["id"] for p in summary["recently_used"]], [self.remover.id])

    def test_usage_statistics_for_period(self):
        self._use(self.color)
        self._use(self.color)
        self._use(self.remover, amount=0.1)
        self._use(self.color, when=utcnow() - timedelta(days=40))

        stats = get_usage_statistics(self.db, self.store.id, "week")

        self.assertEqual(stats["period"], "week")
        top = stats["top_used_products"][0]
        self.assertEqual(top["product"]["id"], self.color.id)
        self.assertEqual(top["usage_count"], 2)
        self.assertAlmostEqual(top["total_amount"], 1.0)
        self.assertEqual(stats["top_service_types"][0]["usage_count"], 3)
        self.assertEqual(sum(row["usage_count"] for row in stats["monthly_usage_trend"]), 4)

    def test_usage_statistics_rejects_unknown_period(self):
        with self.assertRaises(ValidationError):
            get_usage_statistics(self.db, self.store.id, "decade")

    def test_predictions_and_reorder_suggestions(self):
        now = utcnow()
        record_monthly_usage(self.db, self.service.id, 1.0, now - timedelta(days=62))
        record_monthly_usage(self.db, self.service.id, 2.0, now - timedelta(days=31))
        self.db.commit()
        self._use(self.remover, amount=0.9)

        predictions = get_future_predictions(self.db, self.store.id)

        self.assertEqual(len(predictions["expected_usage_by_month"]), 6)
        self.assertTrue(
            all(row["predicted_amount"] >= 0 for row in predictions["expected_usage_by_month"])
        )
        suggestions = predictions["reorder_suggestions"]
        self.assertEqual([s["product"]["id"] for s in suggestions], [self.remover.id])
        self.assertAlmostEqual(suggestions[0]["predicted_next_month_usage"], 0.9)
        self.assertAlmostEqual(suggestions[0]["unused_amount"], 0.0)
        self.assertEqual(suggestions[0]["suggested_lots"], 1)

    def test_open_lot_with_no_spares_is_suggested_against_forecast(self):
        tips = self.make_product(quantity=1, start=1, capacity=100.0, name="Tips")
        for _ in range(3):
            self._use(tips, amount=5.0)

        suggestions = get_future_predictions(self.db, self.store.id)["reorder_suggestions"]

        by_product = {s["product"]["id"]: s for s in suggestions}
        # 85 ml left in the open bottle does not count as spare stock.
        self.assertIn(tips.id, by_product)
        self.assertAlmostEqual(by_product[tips.id]["predicted_next_month_usage"], 15.0)
        self.assertAlmostEqual(by_product[tips.id]["unused_amount"], 0.0)
        self.assertEqual(by_product[tips.id]["suggested_lots"], 1)

    def test_unused_lots_covering_forecast_are_not_suggested(self):
        self._use(self.color, amount=4.0)
        self._use(self.color, amount=4.0, when=utcnow() - timedelta(days=35))

        suggestions = get_future_predictions(self.db, self.store.id)["reorder_suggestions"]

        self.assertNotIn(self.color.id, [s["product"]["id"] for s in suggestions])

    def test_database_failure_degrades_to_empty(self):
        failure = OperationalError("SELECT", {}, Exception("database is locked"))
        with mock.patch(
            "app.services.dashboard_service.recent_activities", side_effect=failure
        ):
            summary = get_dashboard_summary(self.db, self.store.id)

        self.assertEqual(summary["total_products"], 0)
        self.assertEqual(summary["recent_activity"], [])


if __name__ == "__main__":
    unittest.main()
