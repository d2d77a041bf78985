"""Tests for data source selection and the mock data source."""
from datetime import datetime, timezone

import pytest

from conftest import FakeReader, make_config
from app.config import Settings, build_dashboard_config
from app.models.wallet import DEFAULT_WALLETS, TradeStatus
from app.services.chain_reader import CallReverted
from app.services.data_source import LiveChainDataSource, build_data_source
from app.services.mock_source import MockDataSource

ANCHOR = datetime(2026, 10, 19, tzinfo=timezone.utc)


class TestSelection:

    def test_live_by_default(self):
        settings = Settings(_env_file=None)
        source = build_data_source(settings, build_dashboard_config(settings))
        assert isinstance(source, LiveChainDataSource)
        assert source.reader.rpc_url == settings.rpc_url

    def test_mock_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATA_SOURCE", "mock")
        monkeypatch.setenv("MOCK_SEED", "11")
        settings = Settings(_env_file=None)
        source = build_data_source(settings, build_dashboard_config(settings))
        assert isinstance(source, MockDataSource)
        assert source.seed == 11

    def test_unknown_source_rejected(self):
        settings = Settings(_env_file=None, data_source="archive")
        with pytest.raises(ValueError):
            build_data_source(settings, build_dashboard_config(settings))

    def test_config_carries_settings(self):
        settings = Settings(_env_file=None, initial_funding=50000, trade_cap=25)
        config = build_dashboard_config(settings)
        assert config.initial_funding == 50000
        assert config.trade_cap == 25
        assert [w.id for w in config.wallets] == ["A", "B", "C", "D"]
        assert config.chain_id == settings.chain_id == 421614


class TestMockSource:

    @pytest.mark.asyncio
    async def test_history_is_deterministic(self):
        config = make_config()
        one = MockDataSource(config, seed=5, now=ANCHOR)
        two = MockDataSource(config, seed=5, now=ANCHOR)
        wallet = DEFAULT_WALLETS[0]
        assert await one.get_trade_history(wallet) == await two.get_trade_history(wallet)

    @pytest.mark.asyncio
    async def test_balance_matches_realized_pnl(self):
        config = make_config()
        source = MockDataSource(config, seed=5, now=ANCHOR)
        for wallet in DEFAULT_WALLETS:
            history = await source.get_trade_history(wallet)
            balance = await source.get_balance(wallet)
            assert balance == pytest.approx(config.initial_funding + sum(t.pnl for t in history))
            assert all(t.status == TradeStatus.closed for t in history)
            stamps = [t.timestamp for t in history]
            assert stamps == sorted(stamps, reverse=True)

    @pytest.mark.asyncio
    async def test_rates_drift_between_calls(self):
        source = MockDataSource(make_config(), seed=5, now=ANCHOR)
        first = {r.pair: r.long_rate for r in await source.get_funding_rates()}
        second = await source.get_funding_rates()
        assert len(second) == 6
        assert any(first[r.pair] != r.long_rate for r in second)
        magnitudes = [r.magnitude for r in second]
        assert magnitudes == sorted(magnitudes, reverse=True)


class TestHealth:

    @pytest.mark.asyncio
    async def test_live_source_on_expected_chain(self):
        source = LiveChainDataSource(FakeReader(chain=421614), make_config())
        assert await source.health() == {"dataSource": "live", "chainId": 421614, "chainOk": True}

    @pytest.mark.asyncio
    async def test_live_source_on_wrong_chain(self):
        source = LiveChainDataSource(FakeReader(chain=42161), make_config())
        health = await source.health()
        assert health["chainId"] == 42161
        assert health["chainOk"] is False

    @pytest.mark.asyncio
    async def test_live_source_chain_unreadable(self):
        source = LiveChainDataSource(FakeReader(chain=CallReverted("method not found")), make_config())
        assert await source.health() == {"dataSource": "live", "chainId": None, "chainOk": False}

    @pytest.mark.asyncio
    async def test_mock_source_reports_name_only(self):
        assert await MockDataSource(make_config(), now=ANCHOR).health() == {"dataSource": "mock"}
