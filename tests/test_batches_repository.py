"""
Batch store operations against an in-memory sqlite database.
"""
from datetime import date

import pytest

from kawa.errors import NotFound, SoldItemsProtected, ValidationError
from kawa.models import BatchInput, BatchItemInput, OrderItem
from kawa.services.batch_metrics import summarize_batch
from kawa.services.batches import (
    add_items,
    create_batch,
    delete_batch,
    get_batch,
    list_batches,
    move_item,
    remove_items,
    update_batch,
    update_batch_status,
    update_item_quantity,
)
from kawa.services.orders import create_order
from kawa.services.products import create_product, set_in_stock


@pytest.fixture
def products(conn):
    return [
        create_product(conn, name="Brake pads", price=500_000),
        create_product(conn, name="Chain kit", price=700_000),
        create_product(conn, name="Air filter", price=90_000),
    ]


@pytest.fixture
def batch(conn, products):
    return create_batch(
        conn,
        BatchInput(
            purchase_date=date(2026, 2, 1),
            purchase_total_cost=1_000_000,
            shipping_cost=100_000,
            customs_fees=50_000,
            items=[
                BatchItemInput(product_id=products[0].id, quantity=2, unit_cost=300_000),
                BatchItemInput(product_id=products[1].id, quantity=1, unit_cost=400_000),
            ],
        ),
    )


class TestCreateBatch:

    def test_generated_number_and_costs(self, batch):
        assert batch.batch_number == "LOTE-2026-001"
        assert batch.status == "ordered"
        assert len(batch.items) == 2
        assert summarize_batch(batch).total_cost == 1_150_000

    def test_numbers_are_sequential_per_year(self, conn, products, batch):
        second = create_batch(
            conn,
            BatchInput(
                purchase_date="2026-05-01",
                purchase_total_cost=10_000,
                items=[BatchItemInput(product_id=products[2].id, quantity=1, unit_cost=10_000)],
            ),
        )
        assert second.batch_number == "LOTE-2026-002"

    def test_stored_total_cost_column(self, conn, batch):
        row = conn.execute("SELECT total_cost FROM batches WHERE id=?", (batch.id,)).fetchone()
        assert row["total_cost"] == 1_150_000

    def test_duplicate_number_rejected(self, conn, products, batch):
        with pytest.raises(ValidationError):
            create_batch(
                conn,
                BatchInput(
                    batch_number="LOTE-2026-001",
                    purchase_date=date(2026, 2, 1),
                    purchase_total_cost=1,
                    items=[BatchItemInput(product_id=products[2].id, quantity=1, unit_cost=1)],
                ),
            )

    def test_requires_items(self, conn):
        with pytest.raises(ValidationError):
            create_batch(conn, BatchInput(purchase_date=date(2026, 2, 1), purchase_total_cost=1))

    def test_missing_purchase_cost(self, conn, products):
        with pytest.raises(ValidationError):
            create_batch(
                conn,
                BatchInput(
                    purchase_date=date(2026, 2, 1),
                    purchase_total_cost=None,
                    items=[BatchItemInput(product_id=products[0].id, quantity=1, unit_cost=1)],
                ),
            )

    def test_unknown_product(self, conn):
        with pytest.raises(NotFound):
            create_batch(
                conn,
                BatchInput(
                    purchase_date=date(2026, 2, 1),
                    purchase_total_cost=1,
                    items=[BatchItemInput(product_id=999, quantity=1, unit_cost=1)],
                ),
            )
        assert list_batches(conn) == []

    def test_non_positive_quantity(self, conn, products):
        with pytest.raises(ValidationError):
            create_batch(
                conn,
                BatchInput(
                    purchase_date=date(2026, 2, 1),
                    purchase_total_cost=1,
                    items=[BatchItemInput(product_id=products[0].id, quantity=0, unit_cost=1)],
                ),
            )


class TestLookup:

    def test_get_unknown_batch(self, conn):
        with pytest.raises(NotFound):
            get_batch(conn, 42)

    def test_list_filters_by_status(self, conn, batch):
        assert [b.id for b in list_batches(conn, status="ordered")] == [batch.id]
        assert list_batches(conn, status="completed") == []

    def test_list_rejects_unknown_status(self, conn):
        with pytest.raises(ValidationError):
            list_batches(conn, status="lost")


class TestSoldItemGuard:

    def test_refuses_sold_item_without_force(self, conn, batch):
        sold, unsold = batch.items
        set_in_stock(conn, sold.product.id, False)

        with pytest.raises(SoldItemsProtected) as exc:
            remove_items(conn, batch.id, [sold.id])
        assert exc.value.item_ids == [sold.id]
        assert exc.value.count == 1
        assert len(get_batch(conn, batch.id).items) == 2

    def test_unsold_item_removed(self, conn, batch):
        sold, unsold = batch.items
        set_in_stock(conn, sold.product.id, False)

        after = remove_items(conn, batch.id, [unsold.id])
        assert [it.id for it in after.items] == [sold.id]

    def test_force_removes_sold_item_and_keeps_orders(self, conn, batch):
        sold = batch.items[0]
        order = create_order(
            conn,
            items=[OrderItem(product_id=sold.product.id, product_name=sold.product.name, product_price=500_000, quantity=2)],
        )

        after = remove_items(conn, batch.id, [sold.id], force=True)
        assert [it.id for it in after.items] == [batch.items[1].id]
        assert conn.execute("SELECT total FROM orders WHERE id=?", (order.id,)).fetchone()["total"] == 1_000_000

    def test_mixed_request_is_refused_whole(self, conn, batch):
        sold, unsold = batch.items
        set_in_stock(conn, sold.product.id, False)

        with pytest.raises(SoldItemsProtected):
            remove_items(conn, batch.id, [unsold.id, sold.id])
        assert len(get_batch(conn, batch.id).items) == 2

    def test_unknown_item(self, conn, batch):
        with pytest.raises(NotFound):
            remove_items(conn, batch.id, [12345])

    def test_delete_batch_guarded(self, conn, batch):
        set_in_stock(conn, batch.items[0].product.id, False)
        with pytest.raises(SoldItemsProtected):
            delete_batch(conn, batch.id)

        delete_batch(conn, batch.id, force=True)
        with pytest.raises(NotFound):
            get_batch(conn, batch.id)
        assert conn.execute("SELECT COUNT(1) AS n FROM batch_items").fetchone()["n"] == 0


class TestStatusUpdate:

    def test_fee_update_recomputes_allocation(self, conn, batch):
        after = update_batch_status(conn, batch.id, "customs", customs_fees=150_000, additional_fees=50_000)
        assert after.status == "customs"
        report = summarize_batch(after)
        assert report.total_cost == 1_300_000
        assert report.items[after.items[0].id].cost_price == pytest.approx(390_000)

    def test_lifecycle_timestamps_stamped_once(self, conn, batch):
        first = update_batch_status(conn, batch.id, "in_mailbox", mailbox_tracking="MBX-123")
        assert first.arrived_mailbox_at is not None
        assert first.mailbox_tracking == "MBX-123"

        update_batch_status(conn, batch.id, "in_transit")
        again = update_batch_status(conn, batch.id, "in_mailbox")
        assert again.arrived_mailbox_at == first.arrived_mailbox_at
        assert again.shipped_to_colombia_at is not None
        assert again.delivered_at is None

    def test_any_status_may_be_set(self, conn, batch):
        update_batch_status(conn, batch.id, "completed")
        assert update_batch_status(conn, batch.id, "ordered").status == "ordered"

    def test_invalid_status(self, conn, batch):
        with pytest.raises(ValidationError):
            update_batch_status(conn, batch.id, "shipped")


class TestItemEdits:

    def test_update_costs_partially(self, conn, batch):
        after = update_batch(conn, batch.id, shipping_cost=0, notes="repriced")
        assert after.shipping_cost == 0
        assert after.customs_fees == 50_000
        assert after.notes == "repriced"
        assert summarize_batch(after).total_cost == 1_050_000

    def test_add_items(self, conn, batch, products):
        after = add_items(conn, batch.id, [BatchItemInput(product_id=products[2].id, quantity=3, unit_cost=20_000)])
        assert len(after.items) == 3
        assert after.items[-1].quantity == 3

    def test_update_item_quantity(self, conn, batch):
        item = batch.items[0]
        after = update_item_quantity(conn, batch.id, item.id, 5)
        assert after.items[0].quantity == 5
        with pytest.raises(ValidationError):
            update_item_quantity(conn, batch.id, item.id, 0)

    def test_move_item_with_new_cost(self, conn, batch, products):
        other = create_batch(
            conn,
            BatchInput(
                purchase_date=date(2026, 3, 1),
                purchase_total_cost=20_000,
                items=[BatchItemInput(product_id=products[2].id, quantity=1, unit_cost=20_000)],
            ),
        )
        moved = batch.items[1]
        source, dest = move_item(conn, batch.id, moved.id, other.id, unit_cost=380_000)

        assert [it.id for it in source.items] == [batch.items[0].id]
        landed = {it.id: it for it in dest.items}
        assert set(landed) == {moved.id, other.items[0].id}
        assert landed[moved.id].unit_cost == 380_000

    def test_move_to_same_batch_rejected(self, conn, batch):
        with pytest.raises(ValidationError):
            move_item(conn, batch.id, batch.items[0].id, batch.id)
