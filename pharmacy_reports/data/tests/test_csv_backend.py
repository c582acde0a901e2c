from datetime import datetime

import pandas as pd
import pytest

from pharmacy_reports.config import set_config_for_test
from pharmacy_reports.data.backends.csv_backend import CSV_FILES, CsvDataAccess
from pharmacy_reports.data.backends.sql_backend import SqlDataAccess
from pharmacy_reports.data.models import (
    BatchFilters,
    ProductFilters,
    PurchaseOrderFilters,
    TransactionFilters,
    TransactionItemFilters,
)
from pharmacy_reports.data.seed_data import main as seed_main
from pharmacy_reports.data.util import get_data_access
from pharmacy_reports.errors import StoreReadFailure
from pharmacy_reports.services.reorder import ReorderAdvisor
from pharmacy_reports.services.sales import SalesAggregator


def write(path, text):
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def data_dir(tmp_path):
    write(
        tmp_path / "products.csv",
        "ProductID,Name,Category,Brand,SellingPrice,IsActive\n"
        "1,Biogesic 500mg,Analgesics,Unilab,4.50,true\n"
        "2,Solmux 500mg,,Unilab,9.75,TRUE\n"
        "3,Old Stock,Vitamins,,1,false\n",
    )
    write(
        tmp_path / "product_items.csv",
        "ProductItemID,ProductID,Stock,ExpiryDate,IsActive\n"
        "1,1,12,2025-03-31,true\n"
        "2,1,oops,2025-06-30,true\n"
        "3,2,7,,true\n",
    )
    write(tmp_path / "purchase_orders.csv", "PurchaseOrderID,ProductID,SupplierID,OrderPlacedDateTime,OrderArrivalDateTime\n")
    write(
        tmp_path / "transactions.csv",
        "TransactionID,OrderDateTime,Total,VATAmount,Status\n"
        "1,2024-05-02T10:00:00+08:00,45.00,4.82,completed\n"
        "2,2024-05-03T02:30:00Z,19.50,2.09,completed\n",
    )
    write(
        tmp_path / "transaction_items.csv",
        "TransactionItemID,TransactionID,ProductID,Quantity,UnitPrice,Subtotal\n"
        "1,1,1,10,4.50,45.00\n"
        "2,2,2,2,9.75,19.50\n",
    )
    return tmp_path


def test_reads_database_named_columns(data_dir):
    store = CsvDataAccess(data_dir=data_dir)
    products = store.get_products(ProductFilters())
    assert products.product_id.tolist() == ["1", "2"]
    assert products.category.tolist() == ["Analgesics", "Uncategorized"]
    assert products.selling_price.tolist() == [4.5, 9.75]

    batches = store.get_product_batches(BatchFilters(product_ids=["1"]))
    assert batches.stock.tolist() == [12.0, 0.0]


def test_transaction_items_joined_from_files(data_dir):
    items = CsvDataAccess(data_dir=data_dir).get_transaction_items(
        TransactionItemFilters(start_ts=datetime(2024, 5, 3), end_ts=datetime(2024, 5, 4))
    )
    assert items.transaction_item_id.tolist() == ["2"]
    # 02:30 UTC is 10:30 in Manila
    assert items.loc[0, "order_ts"] == pd.Timestamp("2024-05-03 10:30")
    assert items.loc[0, "product_name"] == "Solmux 500mg"


def test_header_only_file_is_empty(data_dir):
    store = CsvDataAccess(data_dir=data_dir)
    assert store.get_transactions(TransactionFilters(start_ts=datetime(2030, 1, 1))).empty
    assert ReorderAdvisor(store).evaluate(now=datetime(2024, 5, 10))[0].lead_time_days == 7.0


def test_services_over_csv(data_dir):
    report = SalesAggregator(CsvDataAccess(data_dir=data_dir)).period_totals("month", now=datetime(2024, 5, 10))
    may = report.totals[4]
    assert (may.transactions, may.total_sales, may.units_sold) == (2, 64.5, 12)
    assert may.best_product == "Biogesic 500mg"


def test_missing_file_raises_store_read_failure(tmp_path):
    store = CsvDataAccess(data_dir=tmp_path)
    with pytest.raises(StoreReadFailure) as exc:
        store.get_products(ProductFilters())
    assert exc.value.source == "products"
    assert "products.csv" in str(exc.value)


def test_completely_empty_file(data_dir):
    write(data_dir / "purchase_orders.csv", "")
    df = CsvDataAccess(data_dir=data_dir).get_purchase_orders(PurchaseOrderFilters(completed_only=False))
    assert df.empty


def test_relative_data_dir_resolves_from_repo_root(tmp_path, monkeypatch):
    (tmp_path / "pyproject.toml").write_text("[project]\nname='x'\n", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)
    assert CsvDataAccess(data_dir="sample_data").data_dir == tmp_path / "sample_data"


def test_get_data_access(data_dir):
    set_config_for_test(data_dir=str(data_dir), store_kind="csv")
    store = get_data_access()
    assert isinstance(store, CsvDataAccess)
    assert store.data_dir == data_dir

    with pytest.raises(ValueError):
        get_data_access("parquet")
    with pytest.raises(ValueError):
        get_data_access("sql")  # no database_url configured

    set_config_for_test(database_url="sqlite://")
    assert isinstance(get_data_access("sql"), SqlDataAccess)


def test_seed_data_round_trip(tmp_path, capsys):
    assert seed_main(["--output-dir", str(tmp_path), "--products", "12", "--days", "30", "--end-date", "2024-05-31"]) == 0
    assert sorted(p.name for p in tmp_path.iterdir()) == sorted(CSV_FILES.values())
    assert "Generated data" in capsys.readouterr().out

    store = CsvDataAccess(data_dir=tmp_path)
    now = datetime(2024, 5, 31, 20, 0)
    assert len(store.get_products(ProductFilters(active=None))) == 12
    report = SalesAggregator(store).period_totals("day", days=30, now=now)
    assert report.transactions > 0
    assert all(s.suggested_reorder_quantity >= 0 for s in ReorderAdvisor(store).evaluate(now=now))

    # refuses to overwrite when asked
    assert seed_main(["--output-dir", str(tmp_path), "--no-overwrite"]) == 2
