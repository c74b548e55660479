import unittest

from sqlalchemy import func, select

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.activity import Activity
from app.models.product import ProductLot
from app.services.product_service import (
    add_stock,
    get_product,
    get_stock_status,
    list_lots,
    start_using_lot,
    update_product,
)
from app.services.store_service import register_store
from tests.support import SalonTestCase


class ProductServiceTest(SalonTestCase):
    def test_create_product_creates_unused_lots(self):
        product = self.make_product(quantity=3)

        lots = list_lots(self.db, self.store.id, product.id)
        self.assertEqual(len(lots), 3)
        self.assertTrue(all(not lot.is_in_use for lot in lots))
        self.assertTrue(all(lot.current_amount is None for lot in lots))
        self.assertEqual(product.total_quantity, 3)
        self.assertEqual(product.in_use_quantity, 0)
        self.assertEqual(product.lot_quantity, 3)

    def test_unknown_category_rejected(self):
        with self.assertRaises(ValidationError):
            self.make_product(category="GLITTER_BOMB")

    def test_start_using_lot_moves_counters(self):
        product = self.make_product(quantity=3)
        lot = list_lots(self.db, self.store.id, product.id)[0]

        started = start_using_lot(self.db, self.store.id, lot.id, actor_id=self.tech.id)

        self.assertTrue(started.is_in_use)
        self.assertAlmostEqual(started.current_amount, 10.0)
        self.assertIsNotNone(started.started_at)
        self.db.refresh(product)
        self.assertEqual(product.total_quantity, 3)
        self.assertEqual(product.in_use_quantity, 1)
        self.assertEqual(product.lot_quantity, 2)

        logged = self.db.execute(
            select(func.count(Activity.id)).where(
                Activity.category == "STOCK", Activity.action == "START_USE"
            )
        ).scalar_one()
        self.assertEqual(logged, 1)

    def test_start_using_lot_twice_conflicts(self):
        product = self.make_product(quantity=2)
        lot = list_lots(self.db, self.store.id, product.id)[0]
        start_using_lot(self.db, self.store.id, lot.id, actor_id=self.tech.id)

        with self.assertRaises(ConflictError):
            start_using_lot(self.db, self.store.id, lot.id, actor_id=self.tech.id)

        self.db.refresh(product)
        self.assertEqual(product.in_use_quantity, 1)
        self.assertEqual(product.lot_quantity, 1)

    def test_start_lot_without_capacity_opens_empty(self):
        product = self.make_product(quantity=1, capacity=None)
        lot = list_lots(self.db, self.store.id, product.id)[0]

        started = start_using_lot(self.db, self.store.id, lot.id, actor_id=self.tech.id)

        self.assertEqual(started.current_amount, 0.0)

    def test_lot_from_other_store_not_found(self):
        product = self.make_product(quantity=1)
        lot = list_lots(self.db, self.store.id, product.id)[0]
        other, other_owner = register_store(
            self.db,
            name="Other",
            owner_email="other@polished.test",
            owner_name="Other Owner",
            password="secret-pass",
        )

        with self.assertRaises(NotFoundError):
            start_using_lot(self.db, other.id, lot.id, actor_id=other_owner.id)
        with self.assertRaises(NotFoundError):
            get_product(self.db, other.id, product.id)

    def test_add_stock_unused_lots(self):
        product = self.make_product(quantity=1)

        lots = add_stock(self.db, self.store.id, product.id, actor_id=self.owner.id, quantity=2)

        self.assertEqual(len(lots), 2)
        self.db.refresh(product)
        self.assertEqual(product.total_quantity, 3)
        self.assertEqual(product.lot_quantity, 3)
        self.assertEqual(product.in_use_quantity, 0)

    def test_add_stock_already_in_use(self):
        product = self.make_product(quantity=0)

        lots = add_stock(
            self.db,
            self.store.id,
            product.id,
            actor_id=self.owner.id,
            quantity=1,
            start_in_use=True,
            initial_amount=4.5,
        )

        self.assertTrue(lots[0].is_in_use)
        self.assertAlmostEqual(lots[0].current_amount, 4.5)
        self.db.refresh(product)
        self.assertEqual(product.total_quantity, 1)
        self.assertEqual(product.in_use_quantity, 1)
        self.assertEqual(product.lot_quantity, 0)

    def test_add_stock_rejects_non_positive_quantity(self):
        product = self.make_product(quantity=1)
        with self.assertRaises(ValidationError):
            add_stock(self.db, self.store.id, product.id, actor_id=self.owner.id, quantity=0)

    def test_stock_status(self):
        product = self.make_product(quantity=3, start=1, min_stock_alert=2)

        status = get_stock_status(self.db, self.store.id, product.id)

        self.assertEqual(status["total_quantity"], 3)
        self.assertEqual(status["in_use_quantity"], 1)
        self.assertEqual(status["lot_quantity"], 2)
        self.assertAlmostEqual(status["total_capacity"], 30.0)
        self.assertAlmostEqual(status["current_total"], 30.0)
        self.assertTrue(status["is_low_stock"])

    def test_update_product_refuses_counters(self):
        product = self.make_product(quantity=1)

        with self.assertRaises(ValidationError):
            update_product(self.db, self.store.id, product.id, total_quantity=10)

        updated = update_product(self.db, self.store.id, product.id, price=22.5, color_name="Berry")
        self.assertAlmostEqual(updated.price, 22.5)
        self.assertEqual(updated.color_name, "Berry")

    def test_lot_count_matches_counters(self):
        product = self.make_product(quantity=4, start=2)
        add_stock(self.db, self.store.id, product.id, actor_id=self.owner.id, quantity=1)

        lot_rows = self.db.execute(
            select(func.count(ProductLot.id)).where(ProductLot.product_id == product.id)
        ).scalar_one()
        self.db.refresh(product)
        self.assertEqual(lot_rows, product.total_quantity)
        self.assertEqual(product.in_use_quantity + product.lot_quantity, product.total_quantity)


if __name__ == "__main__":
    unittest.main()
