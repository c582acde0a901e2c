#!/usr/bin/env python3
"""
seed_data.py

Generates a fake pharmacy inventory and sales history as CSVs under a local
folder (default: the configured data_dir), in the layout read by CsvDataAccess.

Entities:
- products, product_items (stock batches), purchase_orders, transactions, transaction_items

Run:
  python -m pharmacy_reports.data.seed_data --products 40 --days 120
"""

from __future__ import annotations
import argparse
import csv
import os
import random
import sys
from datetime import date, datetime, time, timedelta
from math import pi, sin
from typing import Dict, List, Optional

from ..config import get_config
from .backends.csv_backend import CSV_FILES
from .frames import (
    BATCH_COLUMNS,
    PRODUCT_COLUMNS,
    PURCHASE_ORDER_COLUMNS,
    TRANSACTION_COLUMNS,
    TRANSACTION_ITEM_COLUMNS,
)

# -----------------------------
# Catalogue
# -----------------------------

CATEGORIES = {
    "Analgesics": [("Biogesic", "Paracetamol"), ("Advil", "Ibuprofen"), ("Alaxan", "Ibuprofen + Paracetamol")],
    "Antibiotics": [("Amoxil", "Amoxicillin"), ("Zithromax", "Azithromycin"), ("Ciprobay", "Ciprofloxacin")],
    "Antihistamines": [("Allerkid", "Cetirizine"), ("Claritin", "Loratadine"), ("Benadryl", "Diphenhydramine")],
    "Vitamins": [("Enervon", "Multivitamins"), ("Ceelin", "Ascorbic Acid"), ("Poten-Cee", "Ascorbic Acid")],
    "Cough & Cold": [("Solmux", "Carbocisteine"), ("Neozep", "Phenylephrine"), ("Tuseran", "Dextromethorphan")],
    "Antacids": [("Kremil-S", "Aluminum Hydroxide"), ("Gaviscon", "Sodium Alginate")],
}

STRENGTHS = ["100mg", "250mg", "500mg", "10ml", "60ml"]

VAT_RATE = 0.12


# -----------------------------
# Utility functions
# -----------------------------

def ensure_dir(path: str) -> None:
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def price_round(p: float) -> float:
    return round(max(p, 0.01), 2)


def popularity(n: int, s: float = 1.15) -> int:
    """Product index [0, n-1] biased toward low indices (fast movers)."""
    idx = int((random.random() ** (1.0 / (1.0 + s))) * n)
    return min(idx, n - 1)


def daily_multiplier(d: date) -> float:
    """Mild seasonality over the year plus a weekend uplift."""
    seasonal = 1.0 + 0.25 * sin(d.timetuple().tm_yday / 365.0 * 2 * pi)
    return seasonal * (1.15 if d.weekday() >= 5 else 1.0)


def fmt_ts(ts: datetime) -> str:
    return ts.isoformat(timespec="seconds")


# -----------------------------
# Core generators
# -----------------------------

def gen_products(n: int) -> List[Dict]:
    catalogue = [
        (category, brand, generic)
        for category, entries in CATEGORIES.items()
        for brand, generic in entries
    ]
    products = []
    for i in range(1, n + 1):
        category, brand, generic = catalogue[(i - 1) % len(catalogue)]
        strength = random.choice(STRENGTHS)
        products.append({
            "product_id": str(i),
            "name": f"{brand} {strength}",
            "generic_name": generic,
            "category": category,
            "brand": brand,
            "selling_price": price_round(random.uniform(5, 450)),
            "avg_daily_usage": None,
            "lead_time_days": None,
            "safety_stock": None,
            "is_active": random.random() > 0.05,
        })
    return products


def gen_product_items(products: List[Dict], today: date) -> List[Dict]:
    items = []
    next_id = 1
    for p in products:
        for b in range(random.randint(0, 3)):
            # some batches already expired, most within two years
            expiry = today + timedelta(days=random.randint(-30, 720))
            items.append({
                "product_item_id": str(next_id),
                "product_id": p["product_id"],
                "stock": random.choice([0, random.randint(1, 15), random.randint(20, 300)]),
                "expiry_date": expiry.isoformat() if random.random() > 0.03 else "",
                "batch_number": f"B{p['product_id']:0>4}-{b + 1}",
                "is_active": random.random() > 0.1,
            })
            next_id += 1
    return items


def gen_purchase_orders(products: List[Dict], start_d: date, end_d: date) -> List[Dict]:
    orders = []
    span = max((end_d - start_d).days, 1)
    next_id = 1
    for p in products:
        for _ in range(random.randint(0, 4)):
            placed = datetime.combine(start_d + timedelta(days=random.randint(0, span)), time(9, 0))
            placed += timedelta(minutes=random.randint(0, 480))
            arrived: Optional[datetime] = placed + timedelta(hours=random.uniform(24, 24 * 14))
            if random.random() < 0.15:
                arrived = None  # still open
            orders.append({
                "purchase_order_id": str(next_id),
                "product_id": p["product_id"],
                "supplier_id": str(random.randint(1, 8)),
                "placed_at": fmt_ts(placed),
                "arrived_at": fmt_ts(arrived) if arrived else "",
            })
            next_id += 1
    return orders


def gen_transactions_and_items(
    products: List[Dict], start_d: date, end_d: date, per_day: int
) -> tuple:
    transactions: List[Dict] = []
    items: List[Dict] = []
    tx_id = 1
    item_id = 1

    d = start_d
    while d <= end_d:
        n_tx = max(int(random.gauss(per_day * daily_multiplier(d), per_day * 0.2)), 0)
        for _ in range(n_tx):
            ts = datetime.combine(d, time(8, 0)) + timedelta(minutes=random.randint(0, 13 * 60))
            total = 0.0
            for _ in range(random.randint(1, 4)):
                p = products[popularity(len(products))]
                qty = random.randint(1, 6)
                subtotal = price_round(p["selling_price"] * qty)
                total += subtotal
                items.append({
                    "transaction_item_id": str(item_id),
                    "transaction_id": str(tx_id),
                    "product_id": p["product_id"],
                    "quantity": qty,
                    "unit_price": p["selling_price"],
                    "subtotal": subtotal,
                })
                item_id += 1
            transactions.append({
                "transaction_id": str(tx_id),
                "order_ts": fmt_ts(ts),
                "total": round(total, 2),
                "vat_amount": round(total * VAT_RATE / (1 + VAT_RATE), 2),
                "status": "completed",
            })
            tx_id += 1
        d += timedelta(days=1)
    return transactions, items


# -----------------------------
# CSV writer
# -----------------------------

def write_csv(path: str, rows: List[Dict], headers: List[str]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=headers, extrasaction="ignore")
        w.writeheader()
        for r in rows:
            w.writerow(r)


# -----------------------------
# Main
# -----------------------------

def main(argv: Optional[List[str]] = None) -> int:
    config = get_config()

    parser = argparse.ArgumentParser(description="Generate fake pharmacy inventory and sales CSVs.")
    parser.add_argument("--products", type=int, default=40, help="Number of products in the catalogue.")
    parser.add_argument("--days", type=int, default=config.default_seed_days, help="Days of sales history.")
    parser.add_argument("--per-day", type=int, default=25, help="Average transactions per day.")
    parser.add_argument("--end-date", type=str, default=None, help="YYYY-MM-DD (defaults to today)")
    parser.add_argument("--output-dir", type=str, default=config.data_dir)
    parser.add_argument("--seed", type=int, default=config.default_seed_value)
    parser.add_argument("--no-overwrite", action="store_true", help="Fail if CSVs already exist.")
    args = parser.parse_args(argv)

    random.seed(args.seed)

    outdir = args.output_dir
    ensure_dir(outdir)

    files = {table: os.path.join(outdir, name) for table, name in CSV_FILES.items()}
    if args.no_overwrite:
        for p in files.values():
            if os.path.exists(p):
                print(f"Refusing to overwrite existing file: {p}", file=sys.stderr)
                return 2

    end_d = date.fromisoformat(args.end_date) if args.end_date else date.today()
    start_d = end_d - timedelta(days=max(args.days, 1) - 1)

    products = gen_products(max(args.products, 1))
    batches = gen_product_items(products, end_d)
    purchase_orders = gen_purchase_orders(products, start_d, end_d)
    transactions, items = gen_transactions_and_items(products, start_d, end_d, args.per_day)

    write_csv(files["products"], products, PRODUCT_COLUMNS)
    write_csv(files["product_items"], batches, BATCH_COLUMNS)
    write_csv(files["purchase_orders"], purchase_orders, PURCHASE_ORDER_COLUMNS)
    write_csv(files["transactions"], transactions, TRANSACTION_COLUMNS)
    # order_ts / product_name / category are joined in on read
    write_csv(files["transaction_items"], items, TRANSACTION_ITEM_COLUMNS)

    # simple summary
    print(f"Generated data in {outdir}")
    print(f" products: {len(products)} | product_items: {len(batches)} | purchase_orders: {len(purchase_orders)}")
    print(f" transactions: {len(transactions)} | transaction_items: {len(items)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
