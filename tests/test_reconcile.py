"""Tests for price reconciliation and cost sync."""

from datetime import date
from decimal import Decimal

import pytest

from pricewatch.etl.models import MonitoringRow
from pricewatch.exceptions import ReconciliationError
from pricewatch.matching.models import InternalProduct, MatchStatus
from pricewatch.reconcile.cost_sync import sync_cost_prices
from pricewatch.reconcile.engine import (
    NO_VALID_ROWS_MESSAGE,
    classify_price_change,
    reconcile_monitoring_feed,
    reconcile_price,
)
from pricewatch.reconcile.models import (
    CloseHistoryRecord,
    OpenHistoryRecord,
    PriceDecision,
    PriceHistoryRecord,
    UpdateCatalogCost,
    UpdateCatalogPrice,
    UpsertCandidateProduct,
    UpsertMatchDecision,
    UpsertPriceObservation,
)

TODAY = date(2025, 3, 10)


def _product(product_id="p1", sku="W1", price="37.00", cost="20.00"):
    return InternalProduct(
        id=product_id,
        name="Whisky 0.7L",
        sku=sku,
        current_price=Decimal(price) if price is not None else None,
        cost_price=Decimal(cost) if cost is not None else None,
    )


def _of_type(mutations, kind):
    return [m for m in mutations if isinstance(m, kind)]


class TestClassifyPriceChange:
    """Tests for classify_price_change."""

    def test_promotion(self):
        change = classify_price_change(Decimal("37.00"), Decimal("17.00"))
        assert change.decision == PriceDecision.PROMOTION
        assert float(change.drop_percent) == pytest.approx(0.5405, abs=1e-4)

    def test_mild_drop_is_price_change(self):
        assert classify_price_change(Decimal("10"), Decimal("9")).decision == PriceDecision.PRICE_CHANGE

    def test_exact_threshold_is_price_change(self):
        assert classify_price_change(Decimal("10"), Decimal("8")).decision == PriceDecision.PRICE_CHANGE

    def test_rise_is_price_change(self):
        change = classify_price_change(Decimal("10.00"), Decimal("10.50"))
        assert change.decision == PriceDecision.PRICE_CHANGE
        assert change.drop_percent < 0

    def test_negligible(self):
        change = classify_price_change(Decimal("10.000"), Decimal("10.003"))
        assert change.decision == PriceDecision.NO_CHANGE

    def test_no_price_set(self):
        assert classify_price_change(None, Decimal("5")).decision == PriceDecision.PRICE_CHANGE
        assert classify_price_change(Decimal("0"), Decimal("5")).decision == PriceDecision.PRICE_CHANGE

    def test_custom_threshold(self):
        change = classify_price_change(Decimal("10"), Decimal("8.5"), promo_threshold=Decimal("0.10"))
        assert change.decision == PriceDecision.PROMOTION

    def test_invalid_price(self):
        with pytest.raises(ReconciliationError):
            classify_price_change(Decimal("10"), Decimal("-1"))
        with pytest.raises(ReconciliationError):
            classify_price_change(Decimal("10"), None)


class TestReconcilePrice:
    """Tests for reconcile_price."""

    def test_promotion_keeps_regular_price(self):
        mutations = reconcile_price(_product(), Decimal("17.00"), TODAY)

        assert not _of_type(mutations, UpdateCatalogPrice)
        assert _of_type(mutations, CloseHistoryRecord) == [CloseHistoryRecord("p1", TODAY)]
        opened = _of_type(mutations, OpenHistoryRecord)[0]
        assert opened.regular_price == Decimal("37.00")
        assert opened.promo_price == Decimal("17.00")
        assert opened.cost_price == Decimal("20.00")
        assert opened.valid_from == TODAY
        observation = _of_type(mutations, UpsertPriceObservation)[0].observation
        assert observation.is_promo
        assert observation.price == Decimal("17.00")

    def test_price_change_updates_catalog(self):
        mutations = reconcile_price(_product(price="10.00"), Decimal("10.50"), TODAY)

        assert mutations[0] == UpdateCatalogPrice("p1", Decimal("10.50"))
        opened = _of_type(mutations, OpenHistoryRecord)[0]
        assert opened.regular_price == Decimal("10.50")
        assert opened.promo_price is None
        assert _of_type(mutations, CloseHistoryRecord)

    def test_negligible_delta_emits_nothing(self):
        assert reconcile_price(_product(price="10.000"), Decimal("10.003"), TODAY) == []

    def test_close_precedes_open(self):
        mutations = reconcile_price(_product(price="10.00"), Decimal("12.00"), TODAY)
        kinds = [type(m) for m in mutations]
        assert kinds.index(CloseHistoryRecord) < kinds.index(OpenHistoryRecord)

    def test_cost_carried_from_open_record(self):
        open_record = PriceHistoryRecord("p1", date(2025, 1, 1), Decimal("10.00"), cost_price=Decimal("6.00"))
        mutations = reconcile_price(_product(price="10.00", cost=None), Decimal("11.00"), TODAY, open_record)

        assert _of_type(mutations, OpenHistoryRecord)[0].cost_price == Decimal("6.00")


class TestReconcileMonitoringFeed:
    """Tests for reconcile_monitoring_feed."""

    def setup_method(self):
        self.catalog = [
            _product("p1", "W1", "37.00"),
            _product("p2", "G1", "10.00"),
            _product("p3", "V1", "15.00"),
            _product("p4", "R1", "9.99"),
        ]
        self.rows = [
            MonitoringRow("W1", product_name="Whisky", my_price=Decimal("17.00"),
                          competitors={"rimi.lv": Decimal("18.49"), "barbora.lv": None}),
            MonitoringRow("G1", product_name="Gin", my_price=Decimal("10.50"),
                          competitors={"rimi.lv": Decimal("11.00")}),
            MonitoringRow("X9", product_name="Unknown", my_price=Decimal("5.00")),
            MonitoringRow("V1", product_name="Vodka", my_price=Decimal("-1")),
            MonitoringRow("R1", product_name="Rum", my_price=Decimal("9.992")),
            MonitoringRow("W1", product_name="Whisky", my_price=None,
                          competitors={"rimi.lv": Decimal("18.99")}),
        ]

    def test_counters(self):
        result = reconcile_monitoring_feed(self.rows, self.catalog, TODAY)

        assert result.total_products == 6
        assert result.matched_products == 5
        assert result.unmatched_skus == ["X9"]
        assert result.promotions_detected == 1
        assert result.prices_updated == 1
        assert result.history_records == 2
        assert result.competitor_prices_imported == 2
        assert len(result.errors) == 1
        assert "V1" in result.errors[0]

    def test_mutations(self):
        result = reconcile_monitoring_feed(self.rows, self.catalog, TODAY)

        assert _of_type(result.mutations, UpdateCatalogPrice) == [UpdateCatalogPrice("p2", Decimal("10.50"))]
        assert not any(getattr(m, "product_id", None) in ("p3", "p4") for m in result.mutations)

    def test_competitor_observations_deduplicated(self):
        result = reconcile_monitoring_feed(self.rows, self.catalog, TODAY)
        observations = [
            m.observation for m in _of_type(result.mutations, UpsertPriceObservation)
            if not m.observation.is_promo
        ]

        by_key = {o.key: o for o in observations}
        assert len(by_key) == len(observations) == 2
        assert by_key[("p1", "rimi.lv", TODAY)].price == Decimal("18.99")
        assert by_key[("p2", "rimi.lv", TODAY)].price == Decimal("11.00")

    def test_competitor_products_and_links(self):
        result = reconcile_monitoring_feed(self.rows, self.catalog, TODAY)

        candidates = {m.key: m.candidate for m in _of_type(result.mutations, UpsertCandidateProduct)}
        assert set(candidates) == {"rimi.lv|sku:W1", "rimi.lv|sku:G1"}
        assert candidates["rimi.lv|sku:W1"].price == Decimal("18.99")
        assert candidates["rimi.lv|sku:W1"].name == "Whisky"

        decisions = [m.decision for m in _of_type(result.mutations, UpsertMatchDecision)]
        assert sorted((d.internal_id, d.candidate_key) for d in decisions) == [
            ("p1", "rimi.lv|sku:W1"),
            ("p2", "rimi.lv|sku:G1"),
        ]
        assert all(d.score == 1.0 and d.status == MatchStatus.AUTO_MATCHED for d in decisions)
        assert all(d.override is None for d in decisions)
        assert result.candidate_products == 2
        assert result.match_decisions == 2

    def test_candidates_precede_observations(self):
        rows = [MonitoringRow("G1", my_price=Decimal("10.00"), competitors={"rimi.lv": Decimal("11.00")})]
        result = reconcile_monitoring_feed(rows, self.catalog, TODAY)

        assert [type(m) for m in result.mutations] == [
            UpsertCandidateProduct,
            UpsertMatchDecision,
            UpsertPriceObservation,
        ]

    def test_repeated_sku_sees_updated_price(self):
        rows = [
            MonitoringRow("G1", my_price=Decimal("10.50")),
            MonitoringRow("G1", my_price=Decimal("10.50")),
        ]
        result = reconcile_monitoring_feed(rows, self.catalog, TODAY)

        assert result.prices_updated == 1

    def test_empty_feed(self):
        result = reconcile_monitoring_feed([], self.catalog, TODAY)

        assert result.total_products == 0
        assert result.errors == [NO_VALID_ROWS_MESSAGE]
        assert result.mutations == []

    def test_to_dict(self):
        summary = reconcile_monitoring_feed(self.rows, self.catalog, TODAY).to_dict()

        assert summary["matched_products"] == 5
        assert isinstance(summary["mutations"], int)


class TestCostSync:
    """Tests for sync_cost_prices."""

    def setup_method(self):
        self.products = [
            _product("p1", "A", price="9.99", cost="5.00"),
            _product("p2", "B", price="4.99", cost="3.00"),
            _product("p3", "C", price=None, cost=None),
        ]

    def test_updates_changed_costs(self):
        result = sync_cost_prices(
            self.products,
            {"p1": Decimal("5.50"), "p2": Decimal("3.003"), "p3": Decimal("2.00"), "p9": Decimal("1")},
            TODAY,
        )

        assert result.updated == 2
        assert result.errors == []
        assert _of_type(result.mutations, UpdateCatalogCost) == [
            UpdateCatalogCost("p1", Decimal("5.50")),
            UpdateCatalogCost("p3", Decimal("2.00")),
        ]
        opened = _of_type(result.mutations, OpenHistoryRecord)[0]
        assert opened.regular_price == Decimal("9.99")
        assert opened.cost_price == Decimal("5.50")

    def test_ignores_non_positive_prices(self):
        result = sync_cost_prices(self.products, {"p1": Decimal("0"), "p2": Decimal("-2")}, TODAY)

        assert result.updated == 0
        assert result.mutations == []

    def test_bad_price_is_collected(self):
        result = sync_cost_prices(self.products, {"p1": "n/a", "p2": Decimal("3.50")}, TODAY)

        assert result.updated == 1
        assert len(result.errors) == 1
        assert "p1" in result.errors[0]
