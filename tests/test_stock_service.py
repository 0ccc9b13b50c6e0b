import unittest

from app.core.errors import InsufficientStock, NotFound, ValidationFailure, VariantNotFound
from app.models.product import Product
from app.services import stock_service
from tests.factories import make_session_factory, seed_rice


class StockServiceTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.product, self.one_kg, self.five_kg = seed_rice(self.db)

    def tearDown(self):
        self.db.close()

    def _plain_product(self, quantity=3):
        product = Product(name="Matches", unit_price=1, quantity=quantity, unit_of_measurement="box")
        self.db.add(product)
        self.db.commit()
        return product

    def test_receive_into_default_variant_updates_rollup(self):
        product = stock_service.receive_stock(self.db, self.product.id, 4)
        self.assertEqual(self.one_kg.quantity, 9)
        self.assertEqual(product.quantity, 11)

    def test_receive_into_selected_variant(self):
        stock_service.receive_stock(self.db, self.product.id, 3, self.five_kg.id)
        self.assertEqual(self.five_kg.quantity, 5)
        self.assertEqual(self.product.quantity, 10)

    def test_deduct_reduces_variant_and_rollup(self):
        stock_service.deduct_stock(self.db, self.product.id, 2, self.five_kg.id)
        self.assertEqual(self.five_kg.quantity, 0)
        self.assertEqual(self.product.quantity, 5)

    def test_deduct_beyond_stock_is_rejected_without_changes(self):
        with self.assertRaises(InsufficientStock) as ctx:
            stock_service.deduct_stock(self.db, self.product.id, 3, self.five_kg.id)
        self.assertEqual(ctx.exception.available, 2)
        self.assertEqual(ctx.exception.requested, 3)
        self.assertEqual(ctx.exception.status_code, 400)

        self.db.refresh(self.five_kg)
        self.db.refresh(self.product)
        self.assertEqual(self.five_kg.quantity, 2)
        self.assertEqual(self.product.quantity, 7)

    def test_unknown_variant_is_not_found(self):
        with self.assertRaises(VariantNotFound):
            stock_service.receive_stock(self.db, self.product.id, 1, 999)

    def test_unknown_product_is_not_found(self):
        with self.assertRaises(NotFound):
            stock_service.deduct_stock(self.db, 999, 1)

    def test_quantity_must_be_positive(self):
        with self.assertRaises(ValidationFailure):
            stock_service.receive_stock(self.db, self.product.id, 0)

    def test_deduct_by_name_uses_selected_variant(self):
        stock_service.deduct_stock_by_name(self.db, "Rice", 1, self.five_kg.id)
        self.assertEqual(self.five_kg.quantity, 1)
        self.assertEqual(self.product.quantity, 6)

    def test_deduct_by_name_reports_variant_shortage(self):
        with self.assertRaises(InsufficientStock) as ctx:
            stock_service.deduct_stock_by_name(self.db, "Rice", 6)
        self.assertEqual(str(ctx.exception), "Not enough stock to deduct from the selected variant.")

    def test_deduct_by_unknown_name(self):
        with self.assertRaises(NotFound):
            stock_service.deduct_stock_by_name(self.db, "Flour", 1)

    def test_product_without_variants_never_goes_negative(self):
        product = self._plain_product(quantity=3)
        stock_service.deduct_stock_by_name(self.db, "Matches", 3)
        self.assertEqual(product.quantity, 0)
        with self.assertRaises(InsufficientStock):
            stock_service.deduct_stock(self.db, product.id, 1)
        self.db.refresh(product)
        self.assertEqual(product.quantity, 0)

    def test_lock_variants_skips_missing_ids(self):
        locked = stock_service.lock_variants(self.db, [self.five_kg.id, 999, self.one_kg.id])
        self.assertEqual(sorted(locked), sorted([self.one_kg.id, self.five_kg.id]))
        self.db.rollback()


if __name__ == "__main__":
    unittest.main()
