"""
Batch rollup: potential view, actual view and their zero-denominator paths.
"""
import pytest

from kawa.services.batch_metrics import summarize_batch


class TestPotentialView:

    def test_reference_roi(self, reference_batch):
        r = summarize_batch(reference_batch)
        assert r.total_cost == 1_150_000
        assert r.total_potential_revenue == 1_700_000
        assert r.total_potential_profit == pytest.approx(550_000)
        assert r.roi_percentage == pytest.approx(47.826, abs=1e-3)

    def test_average_margin_is_weighted_by_revenue(self, reference_batch):
        r = summarize_batch(reference_batch)
        assert r.average_margin_percentage == pytest.approx(550_000 / 1_700_000 * 100)

    def test_item_metrics_keyed_by_item_id(self, reference_batch):
        r = summarize_batch(reference_batch)
        assert r.items[1].cost_price == pytest.approx(345_000)
        assert r.items[2].profit_per_unit == pytest.approx(240_000)

    def test_summary_shape(self, reference_batch):
        summary = summarize_batch(reference_batch).summary()
        assert summary["total_items"] == 2
        assert summary["total_units"] == 3
        assert summary["total_shipping_and_fees"] == 150_000
        assert summary["total_investment"] == 1_150_000


class TestActualView:

    def test_nothing_sold(self, reference_batch):
        r = summarize_batch(reference_batch)
        assert r.total_sold_units == 0
        assert r.remaining_units == 3
        assert r.total_actual_revenue == 0
        assert r.real_profit == -1_150_000
        assert r.completion_percentage == 0

    def test_everything_sold(self, builders):
        batch = builders.batch(
            [
                builders.item(1, quantity=2, unit_cost=300_000, price=500_000, sold=True),
                builders.item(2, quantity=1, unit_cost=400_000, price=700_000, sold=True),
            ],
            shipping_cost=100_000,
            customs_fees=50_000,
        )
        r = summarize_batch(batch)
        assert r.completion_percentage == pytest.approx(100.0)
        assert r.total_actual_revenue == 1_700_000
        assert r.real_profit == 550_000
        assert r.actual_roi == pytest.approx(550_000 / 1_150_000 * 100)

    def test_one_unit_sold_is_not_yet_break_even(self, builders):
        """
        Sale state is per line, so the single sold unit of Item1 is its own
        line. Splitting a line does not change its landed unit cost.
        """
        batch = builders.batch(
            [
                builders.item(1, quantity=1, unit_cost=300_000, price=500_000, sold=True),
                builders.item(3, quantity=1, unit_cost=300_000, price=500_000),
                builders.item(2, quantity=1, unit_cost=400_000, price=700_000),
            ],
            shipping_cost=100_000,
            customs_fees=50_000,
        )
        r = summarize_batch(batch)
        assert r.items[1].cost_price == pytest.approx(345_000)
        assert r.total_actual_revenue == 500_000
        assert r.real_profit == -650_000
        assert r.completion_percentage == pytest.approx(33.333, abs=1e-3)

    def test_completion_stays_within_bounds(self, builders):
        for sold_flags in [(False, False), (True, False), (False, True), (True, True)]:
            batch = builders.batch(
                [
                    builders.item(i + 1, quantity=i + 1, unit_cost=10_000, price=20_000, sold=s)
                    for i, s in enumerate(sold_flags)
                ],
                purchase_total_cost=30_000,
            )
            c = summarize_batch(batch).completion_percentage
            assert 0 <= c <= 100

    def test_metrics_shape(self, reference_batch):
        metrics = summarize_batch(reference_batch).metrics()
        assert set(metrics) == {"total_products", "total_sold", "remaining", "completion_percentage", "revenue", "profit", "roi"}


class TestZeroDenominators:

    def test_zero_cost_empty_batch(self, builders):
        r = summarize_batch(builders.batch([], purchase_total_cost=0))
        assert r.roi_percentage == 0
        assert r.actual_roi == 0
        assert r.completion_percentage == 0
        assert r.average_margin_percentage == 0
