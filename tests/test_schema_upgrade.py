import unittest

from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from app.database.engine import ensure_sqlite_schema


class LegacySchemaUpgradeTest(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite://", poolclass=StaticPool)
        with self.engine.begin() as conn:
            conn.exec_driver_sql("CREATE TABLE customers (id INTEGER PRIMARY KEY, purchase_date DATETIME)")
            conn.exec_driver_sql(
                "CREATE TABLE customer_products (id INTEGER PRIMARY KEY, customer_id INTEGER, product_name TEXT)"
            )
            conn.exec_driver_sql("CREATE TABLE products (id INTEGER PRIMARY KEY, name TEXT)")
            conn.exec_driver_sql("CREATE TABLE notifications (id INTEGER PRIMARY KEY, type TEXT, message TEXT)")
            conn.exec_driver_sql("INSERT INTO customers VALUES (1, '2024-06-01 15:20:00')")
            conn.exec_driver_sql("INSERT INTO customer_products VALUES (1, 1, 'Rice')")
            conn.exec_driver_sql("INSERT INTO products VALUES (1, 'Rice')")

    def _columns(self, table):
        return {column["name"] for column in inspect(self.engine).get_columns(table)}

    def test_missing_columns_are_added(self):
        ensure_sqlite_schema(self.engine)
        self.assertIn("cost_price", self._columns("products"))
        self.assertIn("purchase_date", self._columns("customer_products"))
        self.assertIn("actor", self._columns("notifications"))

    def test_line_item_dates_are_backfilled_from_customer(self):
        ensure_sqlite_schema(self.engine)
        with self.engine.connect() as conn:
            value = conn.exec_driver_sql("SELECT purchase_date FROM customer_products WHERE id = 1").scalar()
        self.assertEqual(value, "2024-06-01")

    def test_upgrade_is_idempotent(self):
        ensure_sqlite_schema(self.engine)
        ensure_sqlite_schema(self.engine)
        self.assertIn("cost_price", self._columns("products"))


if __name__ == "__main__":
    unittest.main()
