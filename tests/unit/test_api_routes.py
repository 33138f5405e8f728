"""Route tests for the journal HTTP API."""

from __future__ import annotations

from datetime import timedelta

import pytest
from starlette.testclient import TestClient

from trading_journal.api.app import create_app
from trading_journal.core.errors import StoreUnavailableError
from trading_journal.storage.memory import InMemoryTradeStore

from tests.factories import BASE_TIME, make_trade

HEADERS = {"X-User-Id": "user-1"}

EURUSD_BODY = {
    "symbol": "EURUSD",
    "direction": "long",
    "entry_price": 1.0850,
    "exit_price": 1.0950,
    "stop_loss": 1.0800,
    "quantity": 10000,
    "fees": 5,
    "timestamp_entry": "2024-01-01T12:00:00Z",
}


class _DownStore(InMemoryTradeStore):
    """Store whose reads fail as if the database were unreachable."""

    async def find(self, query):
        raise StoreUnavailableError("connection refused")

    async def get(self, trade_id):
        raise StoreUnavailableError("connection refused")


def _client(trades=(), store=None):
    return TestClient(create_app(store=store if store is not None else InMemoryTradeStore(trades)))


class TestAuthAndPlumbing:
    def test_health(self):
        resp = _client().get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_missing_user_is_401(self):
        assert _client().get("/trades").status_code == 401

    def test_request_id_echoed(self):
        resp = _client().get("/health", headers={"X-Request-Id": "abc123"})
        assert resp.headers["X-Request-Id"] == "abc123"

    def test_request_id_generated(self):
        assert _client().get("/health").headers["X-Request-Id"]

    def test_prometheus_exposition(self):
        resp = _client().get("/metrics")
        assert resp.status_code == 200
        assert "trading_journal_trades_evaluated_total" in resp.text

    def test_store_unavailable_is_503(self):
        client = _client(store=_DownStore())
        assert client.get("/trades", headers=HEADERS).status_code == 503
        assert client.get("/analytics/stats", headers=HEADERS).status_code == 503
        assert client.get("/trades/abc", headers=HEADERS).status_code == 503


class TestTradeRoutes:
    def test_create_computes_derived_fields(self):
        client = _client()
        resp = client.post("/trades", json=EURUSD_BODY, headers=HEADERS)
        assert resp.status_code == 201
        body = resp.json()
        assert body["user_id"] == "user-1"
        assert body["pnl"] == 95.0
        assert body["r_multiple"] == 2.0
        assert body["account_risk"] == 0.5  # default balance 10,000
        assert body["metrics"]["net_pnl"] == 95.0

    def test_stored_and_displayed_account_risk_agree(self):
        client = _client()
        created = client.post("/trades", json=EURUSD_BODY, headers=HEADERS).json()
        assert created["account_risk"] == created["metrics"]["account_risk_percent"] == 0.5
        fetched = client.get(f"/trades/{created['id']}", headers=HEADERS).json()
        assert fetched["metrics"]["account_risk_percent"] == 0.5
        stats = client.get("/analytics/stats", headers=HEADERS).json()
        assert stats["average_account_risk"] == 0.5

    def test_write_responses_include_strategy_name(self):
        store = InMemoryTradeStore()
        store.add_strategy("user-1", "s1", "Breakout")
        client = _client(store=store)
        body = {**EURUSD_BODY, "strategy_id": "s1"}
        created = client.post("/trades", json=body, headers=HEADERS).json()
        assert created["strategy_name"] == "Breakout"
        updated = client.put(
            f"/trades/{created['id']}", json={"emotion": "calm"}, headers=HEADERS,
        ).json()
        assert updated["strategy_name"] == "Breakout"

    def test_create_normalises_input(self):
        body = {
            **EURUSD_BODY,
            "asset_type": "beanie-babies",
            "tags": "breakout, london ,",
            "strategy_id": "all",
            "portfolio_id": "",
        }
        data = _client().post("/trades", json=body, headers=HEADERS).json()
        assert data["asset_type"] == "forex"
        assert data["tags"] == ["breakout", "london"]
        assert data["strategy_id"] is None
        assert data["portfolio_id"] is None

    def test_create_rejects_bad_direction(self):
        body = {**EURUSD_BODY, "direction": "sideways"}
        assert _client().post("/trades", json=body, headers=HEADERS).status_code == 422

    def test_list_recomputes_and_pages(self):
        trades = [
            make_trade(id=f"t{i}", timestamp_entry=BASE_TIME + timedelta(hours=i), pnl=1.0)
            for i in range(5)
        ]
        resp = _client(trades).get("/trades?limit=2&page=2", headers=HEADERS)
        assert resp.status_code == 200
        data = resp.json()
        assert [t["id"] for t in data["trades"]] == ["t2", "t1"]
        assert data["trades"][0]["net_pnl"] == 95.0
        assert data["pagination"] == {"total": 5, "page": 2, "limit": 2, "pages": 3}

    def test_list_only_shows_own_trades(self):
        trades = [make_trade(id="mine"), make_trade(id="theirs", user_id="user-2")]
        data = _client(trades).get("/trades", headers=HEADERS).json()
        assert [t["id"] for t in data["trades"]] == ["mine"]

    def test_list_bad_filter_is_400(self):
        resp = _client().get("/trades?start_date=soon", headers=HEADERS)
        assert resp.status_code == 400

    def test_get_is_shareable_by_id(self):
        client = _client([make_trade(id="x", user_id="user-2")])
        assert client.get("/trades/x", headers=HEADERS).status_code == 200
        assert client.get("/trades/missing", headers=HEADERS).status_code == 404

    def test_get_marks_degraded_records(self):
        client = _client([make_trade(id="x", direction="sideways", pnl=12.0)])
        data = client.get("/trades/x", headers=HEADERS).json()
        assert data["metrics_degraded"] is True
        assert data["net_pnl"] == 12.0

    def test_update_recomputes(self):
        client = _client([make_trade(id="x", exit_price=None)])
        resp = client.put("/trades/x", json={"exit_price": 1.0950}, headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["pnl"] == 95.0

    def test_update_keeps_supplied_values_when_recompute_fails(self):
        client = _client([make_trade(id="x", direction="sideways")])
        resp = client.put("/trades/x", json={"pnl": 33.0}, headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["pnl"] == 33.0

    def test_update_other_users_trade_is_404(self):
        client = _client([make_trade(id="x", user_id="user-2")])
        assert client.put("/trades/x", json={"emotion": "calm"}, headers=HEADERS).status_code == 404

    def test_delete(self):
        client = _client([make_trade(id="x"), make_trade(id="y", user_id="user-2")])
        assert client.delete("/trades/y", headers=HEADERS).status_code == 404
        assert client.delete("/trades/x", headers=HEADERS).status_code == 200
        assert client.get("/trades/x", headers=HEADERS).status_code == 404

    def test_metrics_with_overrides(self):
        client = _client([make_trade(id="x")])
        data = client.get(
            "/trades/x/metrics?stop_loss=1.0750&portfolio_balance=20000", headers=HEADERS,
        ).json()
        assert data["r_multiple"] == 1.0
        assert data["account_risk_percent"] == 0.5

    def test_metrics_unrealized(self):
        client = _client([make_trade(id="x", exit_price=None)])
        data = client.get("/trades/x/metrics?current_price=1.09", headers=HEADERS).json()
        assert data["unrealized_pnl"] == 50.0

    def test_metrics_degrade_for_malformed_record(self):
        client = _client([make_trade(id="x", direction="sideways", pnl=12.0, risk_amount=50.0)])
        resp = client.get("/trades/x/metrics", headers=HEADERS)
        assert resp.status_code == 200
        data = resp.json()
        assert data["metrics_degraded"] is True
        assert data["net_pnl"] == 12.0
        assert data["risk_amount"] == 50.0
        assert data["r_multiple"] is None

    def test_metrics_invalid_override_is_422(self):
        client = _client([make_trade(id="x", exit_price=None)])
        resp = client.get("/trades/x/metrics?current_price=-1", headers=HEADERS)
        assert resp.status_code == 422
        assert resp.json()["field"] == "current_price"


class TestAnalyticsRoutes:
    def test_stats(self):
        trades = [
            make_trade(id="a"),
            make_trade(id="b", exit_price=1.0800, timestamp_entry=BASE_TIME + timedelta(hours=1)),
            make_trade(id="bt", in_backtest=True),
        ]
        data = _client(trades).get("/analytics/stats?initial_balance=1000", headers=HEADERS).json()
        assert data["total_trades"] == 2
        assert data["total_pnl"] == 40.0
        assert data["current_balance"] == 1040.0

    def test_stats_backtest_type(self):
        trades = [make_trade(id="a"), make_trade(id="bt", in_backtest=True, fees=0)]
        data = _client(trades).get("/analytics/stats?type=backtest", headers=HEADERS).json()
        assert data["total_trades"] == 1
        assert data["total_pnl"] == 100.0

    def test_stats_without_losses_has_null_profit_factor(self):
        data = _client([make_trade()]).get("/analytics/stats", headers=HEADERS).json()
        assert data["profit_factor"] is None

    @pytest.mark.parametrize("query", ["tz=Nowhere/Land", "equity_bucket=year"])
    def test_stats_bad_params_are_400(self, query):
        assert _client().get(f"/analytics/stats?{query}", headers=HEADERS).status_code == 400

    def test_calendar_month(self):
        trades = [
            make_trade(id="a", emotion="calm"),
            make_trade(id="b", emotion="greedy", timestamp_entry=BASE_TIME + timedelta(hours=1)),
            make_trade(id="feb", timestamp_entry=BASE_TIME + timedelta(days=31)),
        ]
        data = _client(trades).get("/calendar?month=2024-01", headers=HEADERS).json()
        assert len(data["days"]) == 1
        day = data["days"][0]
        assert day["date"] == "2024-01-01"
        assert day["trades"] == 2
        assert day["emotion"] == "calm"

    def test_calendar_bad_month_is_400(self):
        assert _client().get("/calendar?month=January", headers=HEADERS).status_code == 400
