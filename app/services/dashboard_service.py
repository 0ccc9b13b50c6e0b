from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.clock import Clock, normalize_date, system_clock
from app.models.customer import Customer, CustomerProduct
from app.models.damaged_product import DamagedProduct
from app.models.product import Product, ProductVariant

RECENT_TRANSACTIONS_LIMIT = 10
TOP_PRODUCTS_LIMIT = 5
LOW_STOCK_ALERTS_LIMIT = 10
SALES_CHART_DAYS = 7


def calculate_trend(current, previous):
    if not previous:
        if current > 0:
            return {"value": 100, "direction": "up"}
        return {"value": 0, "direction": "neutral"}

    change = (current - previous) / previous * 100
    if change > 0:
        direction = "up"
    elif change < 0:
        direction = "down"
    else:
        direction = "neutral"
    return {"value": round(abs(change), 1), "direction": direction}


def _month_bounds(day: date) -> tuple[date, date]:
    start = day.replace(day=1)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(days=1)


def _stock_band(quantity: int, critical_max: int, low_max: int) -> str:
    if quantity <= 0:
        return "out_of_stock"
    if quantity <= critical_max:
        return "critical"
    if quantity <= low_max:
        return "low"
    return "in_stock"


def _time_ago(moment, now: datetime) -> str:
    if moment is None:
        return ""
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = datetime.combine(moment, datetime.min.time(), tzinfo=timezone.utc)

    seconds = int((now - moment).total_seconds())
    suffix = "ago" if seconds >= 0 else "from now"
    seconds = abs(seconds)
    for unit, size in (("year", 31_536_000), ("month", 2_592_000), ("week", 604_800),
                       ("day", 86_400), ("hour", 3_600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return "{} {}{} {}".format(count, unit, "" if count == 1 else "s", suffix)
    return "just now"


def load_sale_lines(db: Session) -> list[dict]:
    """One row per purchased line item, priced from the variant whose unit
    label matches the line's unit, else from the product."""
    stmt = (
        select(
            CustomerProduct.customer_id,
            CustomerProduct.product_name,
            CustomerProduct.quantity,
            CustomerProduct.purchase_date.label("item_purchase_date"),
            Customer.purchase_date.label("customer_purchase_date"),
            Product.category,
            Product.quantity.label("current_stock"),
            Product.unit_price.label("base_unit_price"),
            Product.cost_price.label("base_cost_price"),
            ProductVariant.unit_price.label("variant_unit_price"),
            ProductVariant.cost_price.label("variant_cost_price"),
        )
        .join(Customer, Customer.id == CustomerProduct.customer_id)
        .outerjoin(Product, Product.name == CustomerProduct.product_name)
        .outerjoin(
            ProductVariant,
            and_(
                ProductVariant.product_id == Product.id,
                ProductVariant.unit_label == CustomerProduct.unit,
            ),
        )
        .order_by(CustomerProduct.id)
    )
    lines = []
    for row in db.execute(stmt).mappings():
        quantity = float(row["quantity"] or 0)
        sell = row["variant_unit_price"]
        if sell is None:
            sell = row["base_unit_price"]
        cost = row["variant_cost_price"]
        if cost is None:
            cost = row["base_cost_price"]
        sell = float(sell or 0)
        cost = float(cost or 0)
        lines.append(
            {
                "customer_id": row["customer_id"],
                "product_name": row["product_name"],
                "category": row["category"],
                "current_stock": row["current_stock"],
                "quantity": quantity,
                "date": normalize_date(row["item_purchase_date"])
                or normalize_date(row["customer_purchase_date"]),
                "revenue": quantity * sell,
                "profit": quantity * (sell - cost),
            }
        )
    return lines


def sales_metrics(lines: list[dict], today: date) -> dict:
    yesterday = today - timedelta(days=1)
    month_start, month_end = _month_bounds(today)
    last_month_start, last_month_end = _month_bounds(month_start - timedelta(days=1))

    totals = dict.fromkeys(
        ("total_sales", "today_sales", "yesterday_sales", "month_sales", "last_month_sales",
         "total_profit", "today_profit", "month_profit"),
        0.0,
    )
    today_orders = 0
    month_orders = 0

    for line in lines:
        revenue = line["revenue"]
        profit = line["profit"]
        day = line["date"]
        totals["total_sales"] += revenue
        totals["total_profit"] += profit
        if day is None:
            continue
        if day == today:
            totals["today_sales"] += revenue
            totals["today_profit"] += profit
            today_orders += 1
        if day == yesterday:
            totals["yesterday_sales"] += revenue
        if month_start <= day <= month_end:
            totals["month_sales"] += revenue
            totals["month_profit"] += profit
            month_orders += 1
        if last_month_start <= day <= last_month_end:
            totals["last_month_sales"] += revenue

    result = {key: round(value, 2) for key, value in totals.items()}
    result.update(
        {
            "today_orders": today_orders,
            "month_orders": month_orders,
            "daily_trend": calculate_trend(totals["today_sales"], totals["yesterday_sales"]),
            "monthly_trend": calculate_trend(totals["month_sales"], totals["last_month_sales"]),
            "average_order_value": round(totals["today_sales"] / today_orders, 2) if today_orders else 0,
        }
    )
    return result


def _stock_snapshot(db: Session) -> list[dict]:
    """Per product: rollup quantity plus the lowest visible variant quantity."""
    stmt = (
        select(
            Product.id,
            Product.name,
            Product.category,
            Product.unit_of_measurement,
            Product.quantity.label("product_quantity"),
            Product.unit_price,
            ProductVariant.unit_label,
            ProductVariant.quantity.label("variant_quantity"),
            ProductVariant.hidden.label("variant_hidden"),
        )
        .outerjoin(ProductVariant, ProductVariant.product_id == Product.id)
        .order_by(Product.id, ProductVariant.id)
    )
    by_product = OrderedDict()
    for row in db.execute(stmt).mappings():
        entry = by_product.get(row["id"])
        if entry is None:
            entry = {
                "id": row["id"],
                "name": row["name"],
                "category": row["category"],
                "base_unit": row["unit_of_measurement"] or "pcs",
                "quantity": int(row["product_quantity"] or 0),
                "unit_price": float(row["unit_price"] or 0),
                "min_qty": None,
                "min_unit": None,
            }
            by_product[row["id"]] = entry
        if row["variant_quantity"] is None or row["variant_hidden"]:
            continue
        variant_qty = int(row["variant_quantity"])
        if entry["min_qty"] is None or variant_qty < entry["min_qty"]:
            entry["min_qty"] = variant_qty
            entry["min_unit"] = row["unit_label"]
    return list(by_product.values())


def inventory_metrics(snapshot: list[dict], critical_max: int, low_max: int) -> dict:
    counts = {"in_stock": 0, "low": 0, "critical": 0, "out_of_stock": 0}
    total_items = 0
    total_value = 0.0
    categories = set()

    for product in snapshot:
        total_items += product["quantity"]
        total_value += product["quantity"] * product["unit_price"]
        alert_qty = product["min_qty"] if product["min_qty"] is not None else product["quantity"]
        counts[_stock_band(alert_qty, critical_max, low_max)] += 1
        if product["category"]:
            categories.add(product["category"])

    total_products = len(snapshot)
    alerts = counts["low"] + counts["critical"] + counts["out_of_stock"]
    return {
        "total_products": total_products,
        "total_items": total_items,
        "total_value": round(total_value, 2),
        "in_stock": counts["in_stock"],
        "low_stock": counts["low"],
        "critical_stock": counts["critical"],
        "out_of_stock": counts["out_of_stock"],
        "total_categories": len(categories),
        "stock_health": round(counts["in_stock"] / total_products * 100, 1) if total_products else 0,
        "alerts_count": alerts,
    }


def low_stock_alerts(snapshot: list[dict], critical_max: int, low_max: int) -> list[dict]:
    alerts = []
    for product in snapshot:
        quantity = product["min_qty"] if product["min_qty"] is not None else product["quantity"]
        if quantity > low_max:
            continue
        alerts.append(
            {
                "id": product["id"],
                "name": product["name"],
                "quantity": quantity,
                "category": product["category"] or "General",
                "unit": product["min_unit"] or product["base_unit"],
                "severity": _stock_band(quantity, critical_max, low_max),
            }
        )
    alerts.sort(key=lambda alert: alert["quantity"])
    return alerts[:LOW_STOCK_ALERTS_LIMIT]


def customer_metrics(db: Session, today: date) -> dict:
    month_start, month_end = _month_bounds(today)
    purchase_day = func.date(Customer.purchase_date)
    total = db.execute(select(func.count(Customer.id))).scalar_one()
    today_count = db.execute(
        select(func.count(Customer.id)).where(purchase_day == today.isoformat())
    ).scalar_one()
    month_count = db.execute(
        select(func.count(Customer.id)).where(
            purchase_day >= month_start.isoformat(),
            purchase_day <= month_end.isoformat(),
        )
    ).scalar_one()
    return {
        "total_customers": total,
        "today_customers": today_count,
        "month_customers": month_count,
    }


def damaged_metrics(db: Session, today: date) -> dict:
    month_start, month_end = _month_bounds(today)
    prices = dict(db.execute(select(Product.name, Product.unit_price)).all())
    damaged_rows = db.execute(select(DamagedProduct)).scalars().all()

    total_damaged = 0
    total_loss = 0.0
    month_damaged = 0
    month_loss = 0.0
    for damaged in damaged_rows:
        quantity = int(damaged.quantity or 0)
        loss = quantity * float(prices.get(damaged.product_name) or 0)
        total_damaged += quantity
        total_loss += loss
        day = normalize_date(damaged.date) or normalize_date(damaged.created_at)
        if day is not None and month_start <= day <= month_end:
            month_damaged += quantity
            month_loss += loss

    return {
        "total_damaged": total_damaged,
        "total_loss": round(total_loss, 2),
        "month_damaged": month_damaged,
        "month_loss": round(month_loss, 2),
        "total_reports": len(damaged_rows),
    }


def recent_transactions(db: Session, lines: list[dict], now: datetime) -> list[dict]:
    customers = (
        db.execute(
            select(Customer)
            .order_by(Customer.purchase_date.desc(), Customer.id.desc())
            .limit(RECENT_TRANSACTIONS_LIMIT)
        )
        .scalars()
        .all()
    )
    totals = {}
    for line in lines:
        entry = totals.setdefault(line["customer_id"], {"total": 0.0, "count": 0})
        entry["total"] += line["revenue"]
        entry["count"] += 1

    transactions = []
    for customer in customers:
        entry = totals.get(customer.id, {"total": 0.0, "count": 0})
        transactions.append(
            {
                "id": customer.id,
                "customer_name": customer.name,
                "customer_phone": customer.phone or "",
                "total_amount": round(entry["total"], 2),
                "items_count": entry["count"],
                "purchase_date": customer.purchase_date,
                "time_ago": _time_ago(customer.purchase_date, now),
            }
        )
    return transactions


def top_selling_products(lines: list[dict]) -> list[dict]:
    grouped = OrderedDict()
    for line in lines:
        entry = grouped.setdefault(
            line["product_name"],
            {
                "name": line["product_name"],
                "quantity_sold": 0.0,
                "revenue": 0.0,
                "orders": 0,
                "category": line["category"] or "General",
                "current_stock": int(line["current_stock"] or 0),
            },
        )
        entry["quantity_sold"] += line["quantity"]
        entry["revenue"] += line["revenue"]
        entry["orders"] += 1

    ranked = sorted(grouped.values(), key=lambda entry: entry["revenue"], reverse=True)
    top = []
    for rank, entry in enumerate(ranked[:TOP_PRODUCTS_LIMIT], start=1):
        top.append(dict(entry, rank=rank, revenue=round(entry["revenue"], 2)))
    return top


def sales_chart(lines: list[dict], today: date) -> list[dict]:
    days = OrderedDict()
    for offset in range(SALES_CHART_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        days[day] = {"date": day.isoformat(), "day": day.strftime("%a"), "sales": 0.0, "orders": 0}

    for line in lines:
        entry = days.get(line["date"])
        if entry is None:
            continue
        entry["sales"] += line["revenue"]
        entry["orders"] += 1

    return [dict(entry, sales=round(entry["sales"], 2)) for entry in days.values()]


def category_distribution(db: Session) -> list[dict]:
    grouped = {}
    for product in db.execute(select(Product)).scalars():
        name = product.category or "Uncategorized"
        entry = grouped.setdefault(name, {"category": name, "products": 0, "stock": 0, "value": 0.0})
        quantity = int(product.quantity or 0)
        entry["products"] += 1
        entry["stock"] += quantity
        entry["value"] += quantity * float(product.unit_price or 0)

    distribution = [dict(entry, value=round(entry["value"], 2)) for entry in grouped.values()]
    distribution.sort(key=lambda entry: entry["value"], reverse=True)
    return distribution


def build_dashboard(db: Session, *, clock: Clock = system_clock) -> dict:
    settings = get_settings()
    now = clock.now()
    today = now.date()
    critical_max = settings.STOCK_CRITICAL_MAX
    low_max = settings.STOCK_LOW_MAX

    lines = load_sale_lines(db)
    snapshot = _stock_snapshot(db)

    return {
        "sales": sales_metrics(lines, today),
        "inventory": inventory_metrics(snapshot, critical_max, low_max),
        "customers": customer_metrics(db, today),
        "damaged": damaged_metrics(db, today),
        "recent_transactions": recent_transactions(db, lines, now),
        "top_products": top_selling_products(lines),
        "low_stock_alerts": low_stock_alerts(snapshot, critical_max, low_max),
        "sales_chart": sales_chart(lines, today),
        "category_distribution": category_distribution(db),
    }


__all__ = [
    "build_dashboard",
    "calculate_trend",
    "inventory_metrics",
    "load_sale_lines",
    "low_stock_alerts",
    "sales_chart",
    "sales_metrics",
    "top_selling_products",
]
