import unittest
from datetime import date, datetime, timedelta, timezone

from app.schemas.customer import PurchaseCreate
from app.services.dashboard_service import (
    build_dashboard,
    calculate_trend,
    low_stock_alerts,
    sales_chart,
    sales_metrics,
    top_selling_products,
)
from app.services.purchase_service import process_purchase
from tests.factories import fixed_clock, make_session_factory, seed_rice


def _sale(day, revenue, profit=0.0, name="Rice", quantity=1):
    return {
        "customer_id": 1,
        "product_name": name,
        "category": "Grains",
        "current_stock": 10,
        "quantity": quantity,
        "date": day,
        "revenue": revenue,
        "profit": profit,
    }


class DashboardHelpersTest(unittest.TestCase):
    def test_calculate_trend(self):
        self.assertEqual(calculate_trend(0, 0), {"value": 0, "direction": "neutral"})
        self.assertEqual(calculate_trend(50, 0), {"value": 100, "direction": "up"})
        self.assertEqual(calculate_trend(150, 100), {"value": 50.0, "direction": "up"})
        self.assertEqual(calculate_trend(75, 100), {"value": 25.0, "direction": "down"})
        self.assertEqual(calculate_trend(100, 100), {"value": 0.0, "direction": "neutral"})

    def test_sales_metrics_buckets_by_day_and_month(self):
        today = date(2025, 3, 10)
        lines = [
            _sale(today, 100, 30),
            _sale(today, 50, 10),
            _sale(today - timedelta(days=1), 80, 20),
            _sale(date(2025, 2, 15), 200, 50),
            _sale(None, 5, 1),
        ]
        metrics = sales_metrics(lines, today)
        self.assertEqual(metrics["total_sales"], 435)
        self.assertEqual(metrics["today_sales"], 150)
        self.assertEqual(metrics["yesterday_sales"], 80)
        self.assertEqual(metrics["month_sales"], 230)
        self.assertEqual(metrics["last_month_sales"], 200)
        self.assertEqual(metrics["today_orders"], 2)
        self.assertEqual(metrics["average_order_value"], 75)
        self.assertEqual(metrics["today_profit"], 40)
        self.assertEqual(metrics["daily_trend"]["direction"], "up")

    def test_top_products_ranked_by_revenue(self):
        lines = [_sale(None, 10, name="Salt"), _sale(None, 90, name="Rice"), _sale(None, 20, name="Salt")]
        top = top_selling_products(lines)
        self.assertEqual([entry["name"] for entry in top], ["Rice", "Salt"])
        self.assertEqual(top[1]["orders"], 2)
        self.assertEqual(top[0]["rank"], 1)

    def test_sales_chart_covers_last_week(self):
        today = date(2025, 3, 10)
        chart = sales_chart([_sale(today, 12.5), _sale(date(2025, 1, 1), 99)], today)
        self.assertEqual(len(chart), 7)
        self.assertEqual(chart[0]["date"], "2025-03-04")
        self.assertEqual(chart[-1]["sales"], 12.5)
        self.assertEqual(chart[-1]["orders"], 1)

    def test_low_stock_alerts_use_lowest_visible_variant(self):
        snapshot = [
            {"id": 1, "name": "Rice", "category": None, "base_unit": "1kg", "quantity": 40,
             "unit_price": 60, "min_qty": 3, "min_unit": "5kg"},
            {"id": 2, "name": "Salt", "category": "Spices", "base_unit": "pack", "quantity": 50,
             "unit_price": 20, "min_qty": None, "min_unit": None},
        ]
        alerts = low_stock_alerts(snapshot, critical_max=10, low_max=20)
        self.assertEqual(len(alerts), 1)
        self.assertEqual(alerts[0]["unit"], "5kg")
        self.assertEqual(alerts[0]["severity"], "critical")
        self.assertEqual(alerts[0]["category"], "General")


class BuildDashboardTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.clock = fixed_clock()
        self.product, self.one_kg, self.five_kg = seed_rice(self.db, self.clock)

    def tearDown(self):
        self.db.close()

    def test_purchase_shows_up_in_todays_sales(self):
        process_purchase(
            self.db,
            PurchaseCreate(
                customer={"name": "Ayesha"},
                purchase_date=datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc),
                amount_paid=340,
                products=[
                    {"product_id": self.product.id, "variant_id": self.one_kg.id, "product_name": "Rice",
                     "category": "Grains", "unit": "1kg", "quantity": 1},
                    {"product_id": self.product.id, "variant_id": self.five_kg.id, "product_name": "Rice",
                     "category": "Grains", "unit": "5kg", "quantity": 1},
                ],
            ),
            clock=self.clock,
        )
        data = build_dashboard(self.db, clock=self.clock)

        self.assertEqual(data["sales"]["today_sales"], 340)
        self.assertEqual(data["sales"]["today_profit"], 85)
        self.assertEqual(data["sales"]["today_orders"], 2)
        self.assertEqual(data["customers"]["today_customers"], 1)
        self.assertEqual(data["inventory"]["total_products"], 1)
        self.assertEqual(data["inventory"]["total_items"], 5)
        self.assertEqual(data["recent_transactions"][0]["total_amount"], 340)
        self.assertEqual(data["recent_transactions"][0]["time_ago"], "1 hour ago")
        self.assertEqual(data["top_products"][0]["quantity_sold"], 2)
        self.assertEqual(data["category_distribution"][0]["category"], "Grains")


if __name__ == "__main__":
    unittest.main()
