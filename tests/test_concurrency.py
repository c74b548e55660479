"""Two sessions against one SQLite file, interleaved the way two
technicians working at the same time would be."""
import os
import tempfile
import unittest
from unittest import mock

from sqlalchemy import func, select

from app.core.exceptions import ConflictError, InsufficientQuantityError
from app.models.product import Product, ProductLot
from app.models.usage import Usage
from app.services import stats_service
from app.services.product_service import get_lot, list_lots, start_using_lot
from app.services.stats_service import list_monthly_stats
from app.services.usage_service import record_usage, select_fifo_lot
from tests.support import SalonTestCase


class TwoSessionTest(SalonTestCase):
    def setUp(self):
        workdir = tempfile.TemporaryDirectory()
        self.addCleanup(workdir.cleanup)
        self.database_url = "sqlite:///{}".format(os.path.join(workdir.name, "salon.db"))
        super().setUp()
        self.service = self.make_service_type()
        self.first = self.session_factory()
        self.second = self.session_factory()

    def tearDown(self):
        self.first.close()
        self.second.close()
        super().tearDown()

    def _fresh(self):
        session = self.session_factory()
        self.addCleanup(session.close)
        return session

    def _use(self, session, product, amount=None):
        return record_usage(
            session,
            self.store.id,
            product_id=product.id,
            service_type_id=self.service.id,
            nail_length="MEDIUM",
            user_id=self.tech.id,
            usage_amount=amount,
            is_custom_amount=amount is not None,
        )

    def test_usage_from_lot_drained_by_other_session_is_rejected(self):
        product = self.make_product(quantity=1, start=1, capacity=1.0, name="Top Coat")
        stale = select_fifo_lot(self.first, product.id)
        self.assertAlmostEqual(stale.current_amount, 1.0)

        self._use(self.second, product, amount=0.8)

        # The first session still sees the full bottle.
        self.assertAlmostEqual(stale.current_amount, 1.0)
        with self.assertRaises(InsufficientQuantityError) as ctx:
            self._use(self.first, product, amount=0.5)

        self.assertEqual(ctx.exception.lot_id, stale.id)
        self.assertAlmostEqual(ctx.exception.available, 0.2)
        fresh = self._fresh()
        self.assertAlmostEqual(fresh.get(ProductLot, stale.id).current_amount, 0.2)
        self.assertEqual(fresh.execute(select(func.count(Usage.id))).scalar_one(), 1)
        self.assertEqual(fresh.get(Product, product.id).usage_count, 1)

    def test_second_start_of_same_lot_conflicts(self):
        product = self.make_product(quantity=2, name="Builder Gel")
        lot_id = list_lots(self.db, self.store.id, product.id)[0].id
        stale = get_lot(self.first, self.store.id, lot_id)
        self.assertFalse(stale.is_in_use)

        start_using_lot(self.second, self.store.id, lot_id, actor_id=self.tech.id)

        with self.assertRaises(ConflictError):
            start_using_lot(self.first, self.store.id, lot_id, actor_id=self.owner.id)

        counters = self._fresh().get(Product, product.id)
        self.assertEqual(counters.lot_quantity, 1)
        self.assertEqual(counters.in_use_quantity, 1)

    def test_first_rollup_of_month_created_by_both_sessions(self):
        product = self.make_product(quantity=1, start=1, name="Rose Nude")
        real_increment = stats_service._increment
        calls = []

        def row_not_there_yet(*args):
            calls.append(args)
            if len(calls) == 1:
                return False
            return real_increment(*args)

        self._use(self.second, product)
        with mock.patch(
            "app.services.stats_service._increment", side_effect=row_not_there_yet
        ):
            self._use(self.first, product)

        self.assertEqual(len(calls), 2)
        stats = list_monthly_stats(self._fresh(), self.service.id)
        self.assertEqual(len(stats), 1)
        self.assertEqual(stats[0].usage_count, 2)
        self.assertAlmostEqual(stats[0].total_usage, 1.0)
        self.assertAlmostEqual(stats[0].average_usage, 0.5)


if __name__ == "__main__":
    unittest.main()
