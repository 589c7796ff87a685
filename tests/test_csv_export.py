import csv
import io

from asset_importer.core.ingestion.csv_export import CSV_COLUMNS, generate_csv
from asset_importer.models import ItemStatus, ProductRecord


def _rows(content):
    return list(csv.DictReader(io.StringIO(content)))


def test_header_only_for_empty_batch():
    content = generate_csv([])

    assert content.splitlines() == [",".join(CSV_COLUMNS)]


def test_success_and_failed_rows():
    products = [
        ProductRecord(
            name="Beach Poster",
            description='A "sunny", bright poster',
            price="0.20",
            category_id="7",
            download_url="https://cdn.test/downloads/beach.zip",
            image_url=["https://cdn.test/images/beach.jpg"],
            keywords=["beach", "summer"],
        ),
        ProductRecord(
            name="hat",
            price="0.20",
            category_id="7",
            status=ItemStatus.FAILED,
            error="Failed to upload hat.zip: timeout",
        ),
    ]

    rows = _rows(generate_csv(products))

    assert len(rows) == 2
    assert rows[0]["description"] == 'A "sunny", bright poster'
    assert rows[0]["imageUrl"] == "https://cdn.test/images/beach.jpg"
    assert rows[0]["keywords"] == "beach,summer"
    assert rows[0]["isFeatured"] == "false"
    assert rows[0]["status"] == "success"
    assert rows[0]["error"] == ""

    assert rows[1]["status"] == "failed"
    assert rows[1]["downloadUrl"] == ""
    assert rows[1]["error"] == "Failed to upload hat.zip: timeout"


def test_rows_keep_record_order():
    products = [
        ProductRecord(name=f"p{i}", price="0.20", category_id="1") for i in range(5)
    ]

    assert [r["name"] for r in _rows(generate_csv(products))] == ["p0", "p1", "p2", "p3", "p4"]
