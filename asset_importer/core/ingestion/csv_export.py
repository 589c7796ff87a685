"""
CSV projection of product records for the storefront admin import.

One row per record, in the order given. Failed records are kept so the
operator can see which inputs need re-submission.
"""

import csv
import io
import logging
from typing import Dict, List, Sequence

from ...models import ProductRecord

logger = logging.getLogger("asset_importer.ingestion.csv")

CSV_COLUMNS = [
    "name",
    "description",
    "price",
    "categoryId",
    "downloadUrl",
    "imageUrl",
    "keywords",
    "isFeatured",
    "isArchived",
    "status",
    "error",
]

LIST_DELIMITER = ","


def product_row(product: ProductRecord) -> Dict[str, str]:
    return {
        "name": product.name,
        "description": product.description or "",
        "price": product.price,
        "categoryId": product.category_id,
        "downloadUrl": product.download_url or "",
        "imageUrl": LIST_DELIMITER.join(product.image_url),
        "keywords": LIST_DELIMITER.join(product.keywords),
        "isFeatured": "true" if product.is_featured else "false",
        "isArchived": "true" if product.is_archived else "false",
        "status": product.status.value,
        "error": product.error or "",
    }


def generate_csv(products: Sequence[ProductRecord]) -> str:
    """Render products as CSV text with a header row."""
    rows: List[Dict[str, str]] = [product_row(p) for p in products]

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)

    csv_content = buffer.getvalue()
    logger.debug(f"Generated CSV: {len(csv_content)} chars, {len(rows)} rows")
    return csv_content
