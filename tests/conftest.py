"""
Shared fixtures: an in-memory store and plain record builders.

The data directory is pointed at a throwaway folder before anything from
kawa is imported, so logging never writes into the user's home.
"""
import os
import tempfile
from datetime import date

os.environ.setdefault("KAWA_DATA_DIR", tempfile.mkdtemp(prefix="kawa-test-"))

import pytest  # noqa: E402

from kawa.db import get_conn  # noqa: E402
from kawa.models import Batch, BatchItem, Product  # noqa: E402


@pytest.fixture
def conn():
    c = get_conn(":memory:")
    yield c
    c.close()


def make_item(item_id, *, quantity, unit_cost, price, sold=False, product_id=None, batch_id=1):
    product = Product(id=product_id or item_id, name=f"Part {item_id}", price=price, in_stock=not sold)
    return BatchItem(id=item_id, batch_id=batch_id, product=product, quantity=quantity, unit_cost=unit_cost)


def make_batch(
    items=(),
    *,
    batch_id=1,
    purchase_total_cost=1_000_000,
    shipping_cost=None,
    customs_fees=None,
    additional_fees=None,
    status="ordered",
    purchase_date=date(2026, 1, 15),
):
    return Batch(
        id=batch_id,
        batch_number=f"LOTE-{purchase_date.year}-{batch_id:03d}",
        purchase_date=purchase_date,
        purchase_total_cost=purchase_total_cost,
        shipping_cost=shipping_cost,
        customs_fees=customs_fees,
        additional_fees=additional_fees,
        status=status,
        items=tuple(items),
    )


@pytest.fixture
def builders():
    """Expose the record builders to test modules."""

    class _Builders:
        item = staticmethod(make_item)
        batch = staticmethod(make_batch)

    return _Builders


@pytest.fixture
def reference_batch():
    """
    purchase 1,000,000 + shipping 100,000 + customs 50,000
    Item1: 2 x 300,000 listed at 500,000
    Item2: 1 x 400,000 listed at 700,000
    """
    return make_batch(
        [
            make_item(1, quantity=2, unit_cost=300_000, price=500_000),
            make_item(2, quantity=1, unit_cost=400_000, price=700_000),
        ],
        purchase_total_cost=1_000_000,
        shipping_cost=100_000,
        customs_fees=50_000,
        additional_fees=0,
    )
