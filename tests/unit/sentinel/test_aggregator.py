"""
Tests for sentinel/aggregator.py
"""

from unittest.mock import AsyncMock, MagicMock

import pytest


def make_adapter(source, threats=None, side_effect=None):
    adapter = MagicMock()
    adapter.source = source
    adapter.fetch = AsyncMock(return_value=threats or [], side_effect=side_effect)
    return adapter


@pytest.fixture
def tx_threats(make_threat, usgs_response):
    """Three NWS alerts plus the USGS M6.0 quake for Texas."""
    from sentinel.feed_fetcher import USGSAdapter
    from sentinel.models import Severity

    nws = [
        make_threat(id="nws-severe", severity=Severity.SEVERE, effective="2026-01-08T10:00:00Z"),
        make_threat(id="nws-extreme", severity=Severity.EXTREME, effective="2026-01-08T09:00:00Z"),
        make_threat(id="nws-moderate", severity=Severity.MODERATE, effective="2026-01-08T11:00:00Z"),
    ]
    usgs = USGSAdapter()._parse(usgs_response, "TX")
    return nws, usgs


class TestRankThreats:
    """Tests for threat ordering."""

    def test_severity_then_recency(self, make_threat):
        from sentinel.aggregator import rank_threats
        from sentinel.models import Severity

        threats = [
            make_threat(id="minor", severity=Severity.MINOR),
            make_threat(id="old", severity=Severity.SEVERE, effective="2026-01-08T08:00:00Z"),
            make_threat(id="unknown", severity=Severity.UNKNOWN),
            make_threat(id="new", severity=Severity.SEVERE, effective="2026-01-08T09:00:00Z"),
        ]

        assert [t.id for t in rank_threats(threats)] == ["new", "old", "minor", "unknown"]

    def test_unparseable_time_sorts_oldest(self, make_threat):
        from sentinel.aggregator import rank_threats

        threats = [
            make_threat(id="garbled", effective="yesterday-ish"),
            make_threat(id="dated", effective="2026-01-08T08:00:00Z"),
        ]

        assert [t.id for t in rank_threats(threats)] == ["dated", "garbled"]

    def test_unparseable_time_sorts_after_epoch_zero(self, make_threat):
        from sentinel.aggregator import rank_threats

        threats = [
            make_threat(id="garbled", effective="yesterday-ish"),
            make_threat(id="epoch", effective="1970-01-01T00:00:00Z"),
        ]

        assert [t.id for t in rank_threats(threats)] == ["epoch", "garbled"]

    def test_mixed_time_encodings(self, make_threat):
        from datetime import UTC, datetime

        from sentinel.aggregator import rank_threats

        threats = [
            make_threat(id="iso", effective="2026-01-08T10:00:00Z"),
            make_threat(id="millis", effective=int(datetime(2026, 1, 8, 11, tzinfo=UTC).timestamp() * 1000)),
            make_threat(id="dt", effective=datetime(2026, 1, 8, 9, tzinfo=UTC)),
        ]

        assert [t.id for t in rank_threats(threats)] == ["millis", "iso", "dt"]

    def test_empty(self):
        from sentinel.aggregator import rank_threats

        assert rank_threats([]) == []


class TestRefresh:
    """Tests for a single aggregation cycle."""

    @pytest.mark.asyncio
    async def test_merges_and_ranks_sources(self, tx_threats):
        from sentinel.aggregator import ThreatAggregator
        from sentinel.models import Severity, ThreatSource

        nws, usgs = tx_threats
        aggregator = ThreatAggregator(
            adapters=[make_adapter(ThreatSource.NWS, nws), make_adapter(ThreatSource.USGS, usgs)]
        )

        threats, error = await aggregator.refresh("TX")

        assert error is None
        assert [t.id for t in threats] == ["nws-extreme", "tx2026abcd", "nws-severe", "nws-moderate"]
        assert threats[1].magnitude == 6.0
        assert threats[1].severity == Severity.SEVERE
        assert aggregator.threats == threats
        assert aggregator.last_updated is not None
        assert aggregator.loading is False

    @pytest.mark.asyncio
    async def test_adapters_receive_region(self):
        from sentinel.aggregator import ThreatAggregator
        from sentinel.models import ThreatSource

        adapter = make_adapter(ThreatSource.NWS)
        aggregator = ThreatAggregator(adapters=[adapter])

        await aggregator.refresh("OK")

        _, region = adapter.fetch.call_args.args
        assert region == "OK"

    @pytest.mark.asyncio
    async def test_auto_selects_top_threat(self, tx_threats):
        from sentinel.aggregator import ThreatAggregator
        from sentinel.models import ThreatSource

        nws, usgs = tx_threats
        aggregator = ThreatAggregator(
            adapters=[make_adapter(ThreatSource.NWS, nws), make_adapter(ThreatSource.USGS, usgs)]
        )

        await aggregator.refresh("TX")

        assert aggregator.selected_threat.id == "nws-extreme"

    @pytest.mark.asyncio
    async def test_existing_selection_not_overridden(self, tx_threats):
        from sentinel.aggregator import ThreatAggregator
        from sentinel.models import ThreatSource

        nws, _ = tx_threats
        aggregator = ThreatAggregator(adapters=[make_adapter(ThreatSource.NWS, nws)])
        aggregator.select_threat(nws[2])

        await aggregator.refresh("TX")

        assert aggregator.selected_threat.id == "nws-moderate"

    @pytest.mark.asyncio
    async def test_no_threats_no_selection(self):
        from sentinel.aggregator import ThreatAggregator
        from sentinel.models import ThreatSource

        aggregator = ThreatAggregator(adapters=[make_adapter(ThreatSource.NWS)])

        threats, error = await aggregator.refresh("VT")

        assert threats == []
        assert error is None
        assert aggregator.selected_threat is None

    @pytest.mark.asyncio
    async def test_adapter_exception_keeps_partial_data(self, tx_threats):
        from sentinel.aggregator import FETCH_ERROR_MESSAGE, ThreatAggregator
        from sentinel.models import ThreatSource

        nws, _ = tx_threats
        aggregator = ThreatAggregator(
            adapters=[
                make_adapter(ThreatSource.NWS, nws),
                make_adapter(ThreatSource.USGS, side_effect=RuntimeError("boom")),
            ]
        )

        threats, error = await aggregator.refresh("TX")

        assert error == FETCH_ERROR_MESSAGE
        assert len(threats) == 3

    @pytest.mark.asyncio
    async def test_error_cleared_on_next_success(self, tx_threats):
        from sentinel.aggregator import ThreatAggregator
        from sentinel.models import ThreatSource

        nws, _ = tx_threats
        adapter = make_adapter(ThreatSource.NWS, side_effect=RuntimeError("boom"))
        aggregator = ThreatAggregator(adapters=[adapter])

        _, error = await aggregator.refresh("TX")
        assert error is not None

        adapter.fetch.side_effect = None
        adapter.fetch.return_value = nws
        _, error = await aggregator.refresh("TX")

        assert error is None

    @pytest.mark.asyncio
    async def test_outright_failure_keeps_previous_list(self, tx_threats, monkeypatch):
        from sentinel.aggregator import FETCH_ERROR_MESSAGE, ThreatAggregator
        from sentinel.models import ThreatSource

        nws, _ = tx_threats
        aggregator = ThreatAggregator(adapters=[make_adapter(ThreatSource.NWS, nws)])
        await aggregator.refresh("TX")
        first_updated = aggregator.last_updated

        monkeypatch.setattr(aggregator, "_gather", AsyncMock(side_effect=RuntimeError("no session")))
        threats, error = await aggregator.refresh("TX")

        assert error == FETCH_ERROR_MESSAGE
        assert [t.id for t in threats] == ["nws-extreme", "nws-severe", "nws-moderate"]
        assert aggregator.last_updated == first_updated
        assert aggregator.loading is False


class TestSelection:
    """Tests for selection ownership and listeners."""

    def test_listener_notified(self, sample_threat):
        from sentinel.aggregator import ThreatAggregator

        aggregator = ThreatAggregator(adapters=[])
        seen = []
        aggregator.add_selection_listener(seen.append)

        aggregator.select_threat(sample_threat)
        aggregator.clear_selection()

        assert seen == [sample_threat, None]

    def test_same_selection_is_noop(self, sample_threat):
        from sentinel.aggregator import ThreatAggregator

        aggregator = ThreatAggregator(adapters=[])
        listener = MagicMock()
        aggregator.add_selection_listener(listener)

        aggregator.select_threat(sample_threat)
        aggregator.select_threat(sample_threat)

        listener.assert_called_once_with(sample_threat)

    def test_default_adapters(self):
        from sentinel.aggregator import ThreatAggregator
        from sentinel.feed_fetcher import NWSAdapter, USGSAdapter

        aggregator = ThreatAggregator()

        assert [type(a) for a in aggregator.adapters] == [NWSAdapter, USGSAdapter]
