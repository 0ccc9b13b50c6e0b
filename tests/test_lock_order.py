import unittest
from unittest.mock import patch

from app.schemas.customer import PurchaseCreate
from app.schemas.product import VariantUpdate
from app.services import (
    damage_service,
    product_service,
    purchase_service,
    stock_service,
    variant_service,
)
from tests.factories import fixed_clock, make_session_factory, seed_rice


class LockOrderTest(unittest.TestCase):
    """Every path that writes stock locks the product row before any variant row."""

    def setUp(self):
        self.db = make_session_factory()()
        self.clock = fixed_clock()
        self.product, self.one_kg, self.five_kg = seed_rice(self.db, self.clock)
        self.locks = []

    def tearDown(self):
        self.db.close()

    def _recording(self, module, name, kind):
        real = getattr(module, name)

        def record(db, target):
            self.locks.append((kind, [target] if isinstance(target, int) else sorted(target)))
            return real(db, target)

        return patch.object(module, name, side_effect=record)

    def test_purchase_locks_products_then_variants(self):
        payload = PurchaseCreate(
            customer={"name": "Ayesha"},
            amount_paid=340,
            products=[
                {
                    "product_id": self.product.id,
                    "variant_id": variant.id,
                    "product_name": "Rice",
                    "category": "Grains",
                    "unit": variant.unit_label,
                    "quantity": 1,
                }
                for variant in (self.five_kg, self.one_kg)
            ],
        )
        with self._recording(purchase_service, "lock_products", "product"), \
                self._recording(purchase_service, "lock_variants", "variant"):
            purchase_service.process_purchase(self.db, payload, clock=self.clock)

        self.assertEqual(
            self.locks,
            [("product", [self.product.id]), ("variant", [self.one_kg.id, self.five_kg.id])],
        )

    def test_damage_deduct_by_variant_locks_owner_first(self):
        with self._recording(damage_service, "lock_product", "product"), \
                self._recording(damage_service, "lock_variant", "variant"):
            damage_service.deduct_from_inventory(self.db, "Rice", 1, self.five_kg.id, clock=self.clock)

        self.assertEqual(self.locks, [("product", [self.product.id]), ("variant", [self.five_kg.id])])
        self.assertEqual(self.five_kg.quantity, 1)

    def test_stock_deduct_locks_product_then_variant(self):
        with self._recording(stock_service, "lock_product", "product"), \
                self._recording(stock_service, "lock_variant", "variant"):
            stock_service.deduct_stock(self.db, self.product.id, 2)

        self.assertEqual(self.locks, [("product", [self.product.id]), ("variant", [self.one_kg.id])])

    def test_variant_update_locks_product_then_variant(self):
        with self._recording(product_service, "lock_product", "product"), \
                self._recording(variant_service, "lock_variant", "variant"):
            variant_service.update_variant(
                self.db, self.product.id, self.five_kg.id, VariantUpdate(quantity=4)
            )

        self.assertEqual(self.locks, [("product", [self.product.id]), ("variant", [self.five_kg.id])])


if __name__ == "__main__":
    unittest.main()
