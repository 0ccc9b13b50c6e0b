import unittest

from app.core.errors import InsufficientStock, LastVariant, NotFound, ValidationFailure
from app.schemas.product import ProductCreate, VariantCreate, VariantUpdate
from app.services import variant_service
from app.services.product_service import create_product
from tests.factories import fixed_clock, make_session_factory, seed_rice


class VariantServiceTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.clock = fixed_clock()
        self.product, self.one_kg, self.five_kg = seed_rice(self.db, self.clock)

    def tearDown(self):
        self.db.close()

    def test_create_variant_adds_to_rollup(self):
        variant, product = variant_service.create_variant(
            self.db,
            self.product.id,
            VariantCreate(sku="RICE-25", unit_label="25kg", unit_price=1300, quantity=1),
        )
        self.assertFalse(variant.is_default)
        self.assertEqual(variant.conversion_factor, 1)
        self.assertEqual(product.quantity, 8)
        self.assertEqual(product.unit_of_measurement, "1kg")

    def test_create_default_variant_takes_over(self):
        variant, product = variant_service.create_variant(
            self.db,
            self.product.id,
            VariantCreate(unit_label="10kg", unit_price=550, quantity=4, is_default=True),
        )
        self.assertTrue(variant.is_default)
        self.assertFalse(self.one_kg.is_default)
        self.assertEqual(product.unit_price, 550)
        self.assertEqual(product.unit_of_measurement, "10kg")

    def test_duplicate_sku_is_rejected(self):
        with self.assertRaises(ValidationFailure):
            variant_service.create_variant(
                self.db,
                self.product.id,
                VariantCreate(sku="RICE-5", unit_label="5kg", unit_price=280, quantity=1),
            )

    def test_update_variant_price_mirrors_when_default(self):
        variant_service.update_variant(self.db, self.product.id, self.one_kg.id, VariantUpdate(unit_price=65))
        self.assertEqual(self.product.unit_price, 65)

    def test_update_variant_quantity_refreshes_sum(self):
        variant_service.update_variant(self.db, self.product.id, self.five_kg.id, VariantUpdate(quantity=10))
        self.assertEqual(self.product.quantity, 15)

    def test_clearing_default_hands_flag_to_another_variant(self):
        variant_service.update_variant(self.db, self.product.id, self.one_kg.id, VariantUpdate(is_default=False))
        self.assertFalse(self.one_kg.is_default)
        self.assertTrue(self.five_kg.is_default)
        self.assertEqual(self.product.unit_price, 280)
        self.assertEqual(self.product.unit_of_measurement, "5kg")

    def test_clearing_default_on_a_non_default_variant_changes_nothing(self):
        variant_service.update_variant(self.db, self.product.id, self.five_kg.id, VariantUpdate(is_default=False))
        self.assertTrue(self.one_kg.is_default)
        self.assertFalse(self.five_kg.is_default)

    def test_only_variant_must_stay_default(self):
        salt = create_product(
            self.db,
            ProductCreate(name="Salt", unit_price=20, quantity=3, unit_of_measurement="pack"),
            clock=self.clock,
        )
        base = salt.variants[0]
        with self.assertRaises(ValidationFailure):
            variant_service.update_variant(self.db, salt.id, base.id, VariantUpdate(is_default=False))
        self.db.refresh(base)
        self.assertTrue(base.is_default)

    def test_set_default_switches_rollup(self):
        product = variant_service.set_default(self.db, self.product.id, self.five_kg.id)
        self.assertTrue(self.five_kg.is_default)
        self.assertFalse(self.one_kg.is_default)
        self.assertEqual(product.unit_price, 280)
        self.assertEqual(product.unit_of_measurement, "5kg")
        self.assertEqual(product.sku, "RICE-5")

    def test_deleting_default_promotes_first_remaining(self):
        product = variant_service.delete_variant(self.db, self.product.id, self.one_kg.id)
        self.assertEqual([variant.id for variant in product.variants], [self.five_kg.id])
        self.assertTrue(self.five_kg.is_default)
        self.assertEqual(product.quantity, 2)
        self.assertEqual(product.unit_of_measurement, "5kg")

    def test_last_variant_cannot_be_deleted(self):
        variant_service.delete_variant(self.db, self.product.id, self.five_kg.id)
        with self.assertRaises(LastVariant):
            variant_service.delete_variant(self.db, self.product.id, self.one_kg.id)
        self.db.refresh(self.product)
        self.assertEqual(len(self.product.variants), 1)

    def test_variant_of_another_product_is_not_found(self):
        other = create_product(
            self.db,
            ProductCreate(name="Salt", unit_price=20, quantity=3, unit_of_measurement="pack"),
            clock=self.clock,
        )
        with self.assertRaises(NotFound):
            variant_service.receive_variant(self.db, other.id, self.one_kg.id, 1)

    def test_receive_and_deduct_variant(self):
        variant_service.receive_variant(self.db, self.product.id, self.five_kg.id, 3)
        self.assertEqual(self.five_kg.quantity, 5)
        variant_service.deduct_variant(self.db, self.product.id, self.five_kg.id, 5)
        self.assertEqual(self.five_kg.quantity, 0)
        self.assertEqual(self.product.quantity, 5)
        with self.assertRaises(InsufficientStock):
            variant_service.deduct_variant(self.db, self.product.id, self.five_kg.id, 1)

    def test_toggle_hidden(self):
        variant = variant_service.toggle_hidden(self.db, self.product.id, self.five_kg.id)
        self.assertTrue(variant.hidden)
        variant = variant_service.toggle_hidden(self.db, self.product.id, self.five_kg.id)
        self.assertFalse(variant.hidden)


if __name__ == "__main__":
    unittest.main()
