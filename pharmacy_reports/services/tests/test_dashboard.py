from datetime import date, datetime

import pytest

from pharmacy_reports.data.backends.records_backend import RecordsDataAccess
from pharmacy_reports.errors import StoreReadFailure
from pharmacy_reports.services.dashboard import DashboardMetrics

NOW = datetime(2024, 6, 1, 9, 0)


@pytest.fixture
def store():
    return RecordsDataAccess(
        {
            "products": [
                {"product_id": "A", "name": "Amoxicillin 500mg", "category": "Antibiotics", "brand": "Amoxil", "selling_price": "12.5"},
                {"product_id": "B", "name": "Biogesic 500mg", "category": "Analgesics", "brand": "Unilab", "selling_price": 4},
                {"product_id": "C", "name": "Cetirizine 10mg", "category": "Antihistamines", "brand": "Allerkid", "selling_price": 9},
                {"product_id": "D", "name": "Discontinued", "category": "Vitamins", "is_active": False},
            ],
            "product_items": [
                {"product_item_id": "1", "product_id": "A", "stock": 5, "expiry_date": "2024-07-15"},
                {"product_item_id": "2", "product_id": "A", "stock": 10, "expiry_date": "2024-08-01"},
                {"product_item_id": "3", "product_id": "A", "stock": 500, "expiry_date": "2024-06-10", "is_active": False},
                {"product_item_id": "4", "product_id": "B", "stock": 100, "expiry_date": "2024-11-15"},
                {"product_item_id": "5", "product_id": "B", "stock": 40, "expiry_date": None},
                {"product_item_id": "6", "product_id": "B", "stock": 40, "expiry_date": "2025-06-01"},
                {"product_item_id": "7", "product_id": "D", "stock": 1, "expiry_date": "2024-07-01"},
                {"product_item_id": "8", "product_id": "A", "stock": 0, "expiry_date": "2024-05-01"},
            ],
            "transactions": [
                {"transaction_id": "T1", "order_ts": "2023-12-31T22:00:00", "total": 500},
                {"transaction_id": "T2", "order_ts": "2024-01-05T10:00:00", "total": 120.25},
                {"transaction_id": "T3", "order_ts": "2024-12-31T23:00:00", "total": 79.75},
            ],
        }
    )


def test_low_stock_count_includes_products_without_batches(store):
    result = DashboardMetrics(store).low_stock_count(threshold=20)
    # A holds 15 active units, C has no batches; B has 180 and D is inactive
    assert (result.count, result.threshold) == (2, 20)


def test_low_stock_threshold_defaults_to_config(store):
    assert DashboardMetrics(store).low_stock_count().threshold == 20


def test_list_low_stock_rows(store):
    rows = DashboardMetrics(store).list_low_stock(threshold=20)
    assert [(r.row_no, r.product_id, r.qty) for r in rows] == [(1, "C", 0), (2, "A", 15)]
    assert rows[0].expiry is None
    # earliest expiry over active batches, including the empty expired one
    assert rows[1].expiry == date(2024, 5, 1)
    assert rows[1].price == 12.5
    assert rows[1].brand == "Amoxil"


def test_list_low_stock_paging(store):
    metrics = DashboardMetrics(store)
    page = metrics.list_low_stock(threshold=20, limit=1, offset=1)
    assert [(r.row_no, r.product_id) for r in page] == [(2, "A")]
    assert len(metrics.list_low_stock(threshold=20, limit=0)) == 2


def test_expiring_counts(store):
    result = DashboardMetrics(store).expiring_counts(warn_months=6, danger_months=3, now=NOW)
    # danger: Jul 1, Jul 15, Aug 1; warn: Nov 15; expired, undated and 2025 batches are ignored
    assert (result.danger, result.warn, result.total) == (3, 1, 4)
    assert (result.warn_months, result.danger_months) == (6, 3)


def test_list_expiring_batches(store):
    rows = DashboardMetrics(store).list_expiring_batches(months=6, danger=3, now=NOW)
    assert [r.product_item_id for r in rows] == ["8", "1", "2", "4"]
    expired, first = rows[0], rows[1]
    assert (expired.days_left, expired.expiry_level) == (-31, "danger")
    assert (first.days_left, first.expiry_level, first.product_name) == (44, "danger", "Amoxicillin 500mg")
    assert (rows[-1].expiry_level, rows[-1].days_left, rows[-1].qty) == ("warn", 167, 100)
    assert rows[-1].expiry_date == date(2024, 11, 15)


def test_transactions_count_and_total_sales_default_to_current_year(store):
    metrics = DashboardMetrics(store)
    count = metrics.transactions_count(now=NOW)
    assert count.count == 2
    assert (count.start, count.end) == (datetime(2024, 1, 1), datetime(2025, 1, 1))

    sales = metrics.total_sales(now=NOW)
    assert sales.total_sales == 200.0
    assert sales.currency == "PHP"


def test_total_sales_explicit_inclusive_dates(store):
    sales = DashboardMetrics(store, currency="USD").total_sales(start="2023-12-31", end="2024-01-05", now=NOW)
    assert sales.total_sales == 620.25
    assert sales.currency == "USD"


def test_store_failure_is_not_swallowed():
    class FailingStore(RecordsDataAccess):
        def get_product_batches(self, filters):
            raise StoreReadFailure("timeout", source="Product_Item")

    with pytest.raises(StoreReadFailure):
        DashboardMetrics(FailingStore({})).low_stock_count()
