"""
Tests for the trading application layer (use cases).

Tests use cases with mocked ports. No real infrastructure needed.
Each test verifies orchestration logic, not business rules.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from ascendancy.application.trading.analyze_sentiment import AnalyzeSentimentUseCase
from ascendancy.application.trading.collect_signals import CollectSignalsUseCase
from ascendancy.application.trading.collectors import (
    NewsHeadlineCollector,
    SocialMediaCollector,
    TechnicalCollector,
    VolumeCollector,
)
from ascendancy.application.trading.execute_trades import ExecuteTradesUseCase
from ascendancy.application.trading.make_decisions import MakeDecisionsUseCase
from ascendancy.application.trading.record_cycle import RecordCycleUseCase
from ascendancy.domain.trading.aggregator import SentimentAggregator
from ascendancy.domain.trading.decision_engine import DecisionEngine
from ascendancy.domain.trading.entities import (
    CycleState,
    CycleStatus,
    DailyPerformanceSnapshot,
    DecisionOrigin,
    ExecutedTrade,
    Instrument,
    RawPost,
    SignalReading,
    SignalSource,
    TradeAction,
    TradeDecision,
)
from ascendancy.domain.trading.errors import (
    InsufficientDataError,
    PersistenceError,
    SourceUnavailableError,
)
from ascendancy.domain.trading.ledger import PortfolioLedger
from ascendancy.domain.trading.ports import (
    NewsFeedPort,
    ReasoningPort,
    SignalCollector,
    SocialFeedPort,
    TradeRepository,
    TradingStore,
)
from ascendancy.domain.trading.watchlist import build_watch_list

from conftest import (
    AGENT_ID,
    AS_OF,
    NOW,
    FakeMarketData,
    FakeReasoning,
    make_agent,
    make_portfolio,
    make_position,
    make_sentiment,
)


def _state(symbols=("AAPL",), portfolio=None, **changes) -> CycleState:
    state = CycleState(
        agent_id=AGENT_ID,
        as_of=AS_OF,
        watch_list=build_watch_list(list(symbols)),
        portfolio=portfolio or make_portfolio(),
    )
    return state.advance(CycleStatus.DATA_COLLECTED, **changes) if changes else state


def _social_feed(name: str, posts=None, error=None) -> MagicMock:
    feed = MagicMock(spec=SocialFeedPort)
    feed.name = name
    if error is not None:
        feed.fetch_mentions.side_effect = error
    else:
        feed.fetch_mentions.return_value = posts or []
    return feed


def _news_feed(name: str, headlines=None, error=None) -> MagicMock:
    feed = MagicMock(spec=NewsFeedPort)
    feed.name = name
    if error is not None:
        feed.fetch_headlines.side_effect = error
    else:
        feed.fetch_headlines.return_value = headlines or []
    return feed


class _StubCollector(SignalCollector):
    """Returns a fixed reading per symbol, raises for anything else."""

    def __init__(self, source: SignalSource, scores: dict[str, float], error=None):
        self.source = source
        self._scores = scores
        self._error = error

    def collect(self, instrument: Instrument) -> SignalReading:
        if instrument.symbol not in self._scores:
            raise self._error or SourceUnavailableError(
                self.source.value, instrument.symbol, "timeout"
            )
        return SignalReading(self.source, self._scores[instrument.symbol], 0.8, 5)


# ===================================================================
# Collectors
# ===================================================================


class TestSocialMediaCollector:
    """Tests for the social collector."""

    def test_scores_matching_posts_by_engagement(self) -> None:
        posts = [
            RawPost(source="reddit", text="$AAPL to the moon", engagement=5),
            RawPost(source="reddit", text="nothing to see here", engagement=999),
            RawPost(source="reddit", text="Selling my AAPL shares", engagement=50),
        ]
        tagged = [RawPost(source="stocktwits", text="great quarter", engagement=7,
                          label="Bullish", symbol="AAPL")]
        reasoning = FakeReasoning(scores={"AAPL": 0.8})
        collector = SocialMediaCollector(
            [_social_feed("reddit", posts), _social_feed("stocktwits", tagged)], reasoning
        )

        reading = collector.collect(Instrument("AAPL"))

        assert reading.source is SignalSource.SOCIAL
        assert reading.score == 0.8
        assert reading.data_points == 3
        assert reading.confidence == pytest.approx(3 / 20)
        _, samples, source = reasoning.calls[0]
        assert source is SignalSource.SOCIAL
        assert samples[0].startswith("[reddit, engagement 50]")
        assert "Bullish" in samples[1]

    def test_one_failed_feed_is_tolerated(self) -> None:
        posts = [RawPost(source="reddit", text="$TSLA squeeze", engagement=1)]
        collector = SocialMediaCollector(
            [
                _social_feed("reddit", posts),
                _social_feed("stocktwits", error=SourceUnavailableError("social", "TSLA", "429")),
            ],
            FakeReasoning(),
        )

        assert collector.collect(Instrument("TSLA")).data_points == 1

    def test_all_feeds_failed(self) -> None:
        error = SourceUnavailableError("social", "TSLA", "timeout")
        collector = SocialMediaCollector([_social_feed("reddit", error=error)], FakeReasoning())

        with pytest.raises(SourceUnavailableError):
            collector.collect(Instrument("TSLA"))

    def test_no_mentions(self) -> None:
        collector = SocialMediaCollector(
            [_social_feed("reddit", [RawPost(source="reddit", text="hello")])], FakeReasoning()
        )

        with pytest.raises(InsufficientDataError):
            collector.collect(Instrument("TSLA"))


class TestNewsHeadlineCollector:
    """Tests for the news collector."""

    def test_headlines_are_deduplicated_across_feeds(self) -> None:
        reasoning = FakeReasoning(scores={"AAPL": 0.3})
        collector = NewsHeadlineCollector(
            [
                _news_feed("yahoo", ["Apple beats estimates", "Apple faces inquiry"]),
                _news_feed("google", ["apple beats estimates ", "Apple unveils iPhone"]),
            ],
            reasoning,
        )

        reading = collector.collect(Instrument("AAPL"))

        assert reading.data_points == 3
        assert reading.score == 0.3
        assert reading.confidence == pytest.approx(3 / 15)
        assert reasoning.calls[0][1] == [
            "Apple beats estimates",
            "Apple faces inquiry",
            "Apple unveils iPhone",
        ]

    def test_no_headlines(self) -> None:
        collector = NewsHeadlineCollector([_news_feed("yahoo", [])], FakeReasoning())

        with pytest.raises(InsufficientDataError):
            collector.collect(Instrument("AAPL"))


class TestPriceCollectors:
    """Tests for the technical and volume collectors."""

    def test_technical_reading(self, rising_closes) -> None:
        market = FakeMarketData({}, {"AAPL": rising_closes})

        reading = TechnicalCollector(market).collect(Instrument("AAPL"))

        assert reading.source is SignalSource.TECHNICAL
        assert reading.score > 0.9
        assert reading.confidence == 0.7
        assert reading.data_points == 30

    def test_technical_needs_ten_points(self) -> None:
        market = FakeMarketData({}, {"AAPL": [100.0] * 9})

        with pytest.raises(InsufficientDataError):
            TechnicalCollector(market).collect(Instrument("AAPL"))

    def test_volume_reading(self) -> None:
        market = FakeMarketData({}, {"AAPL": [100.0, 100.5, 100.2, 100.4, 100.3]})

        reading = VolumeCollector(market).collect(Instrument("AAPL"))

        assert reading.score == 0.5
        assert reading.confidence == 0.5


# ===================================================================
# Collect and analyze
# ===================================================================


class TestCollectSignalsUseCase:
    """Tests for the concurrent fan-out."""

    def test_failures_are_isolated_per_source(self) -> None:
        market = FakeMarketData({"AAPL": "150"})
        collectors = [
            _StubCollector(SignalSource.NEWS, {"AAPL": 0.6}),
            _StubCollector(SignalSource.SOCIAL, {"AAPL": 0.7}),
            _StubCollector(SignalSource.VOLUME, {}, error=RuntimeError("bug")),
        ]

        state = CollectSignalsUseCase(market, collectors).execute(_state(("AAPL", "XYZ")))

        assert state.status is CycleStatus.DATA_COLLECTED
        assert state.prices == {"AAPL": Decimal("150")}
        assert [r.source for r in state.readings["AAPL"]] == [
            SignalSource.NEWS,
            SignalSource.SOCIAL,
        ]
        assert state.readings["XYZ"] == ()

        analyzed = AnalyzeSentimentUseCase(SentimentAggregator()).execute(state)

        assert analyzed.status is CycleStatus.SENTIMENT_ANALYZED
        assert analyzed.sentiments["XYZ"].score == 0.5
        assert analyzed.sentiments["XYZ"].confidence == 0.1
        assert analyzed.sentiments["AAPL"].score == pytest.approx(0.65)

    def test_prices_cover_off_list_holdings(self) -> None:
        market = FakeMarketData({"AAPL": "150", "ZM": "65"})
        portfolio = make_portfolio("1000", make_position("ZM", 3, "70"))

        state = CollectSignalsUseCase(market, []).execute(_state(("AAPL",), portfolio))

        assert set(state.prices) == {"AAPL", "ZM"}
        assert "ZM" not in state.readings

    def test_no_prices_fails_collection(self) -> None:
        state = CollectSignalsUseCase(FakeMarketData({}), []).execute(_state(("AAPL",)))

        assert state.status is CycleStatus.DATA_COLLECTION_FAILED
        assert state.errors


class TestAnalyzeSentimentUseCase:
    """Tests for sentiment aggregation over the cycle."""

    def test_aggregator_crash_gives_neutral_sentiment(self) -> None:
        aggregator = MagicMock(spec=SentimentAggregator)
        real = SentimentAggregator()
        aggregator.aggregate.side_effect = [RuntimeError("boom"), real.aggregate("AAPL", ())]

        state = AnalyzeSentimentUseCase(aggregator).execute(_state(("AAPL",)))

        assert state.status is CycleStatus.SENTIMENT_ANALYSIS_FAILED
        assert state.sentiments["AAPL"].is_fallback


# ===================================================================
# Decisions
# ===================================================================


class TestMakeDecisionsUseCase:
    """Tests for rule and delegated decision making."""

    REPLY = (
        "TRADE_1:\nSYMBOL: MSFT\nACTION: BUY\nQUANTITY: 5\nREASONING: cloud\nCONFIDENCE: 0.7\n\n"
        "TRADE_2:\nSYMBOL: AAPL\nACTION: BUY\nQUANTITY: 3\nREASONING: services\n"
    )

    def _analyzed(self, aapl: float = 0.5) -> CycleState:
        return _state(
            ("AAPL", "MSFT"),
            prices={"AAPL": Decimal("150"), "MSFT": Decimal("300")},
            sentiments={
                "AAPL": make_sentiment("AAPL", aapl),
                "MSFT": make_sentiment("MSFT", 0.5),
            },
        )

    def test_rule_policy(self) -> None:
        state = MakeDecisionsUseCase(DecisionEngine()).execute(self._analyzed(aapl=0.8))

        assert state.status is CycleStatus.DECISIONS_MADE
        buy = next(d for d in state.decisions if d.symbol == "AAPL")
        assert buy.action is TradeAction.BUY
        assert buy.origin is DecisionOrigin.RULE

    def test_delegated_proposals(self) -> None:
        use_case = MakeDecisionsUseCase(
            DecisionEngine(), FakeReasoning(reply=self.REPLY), use_delegated_policy=True
        )

        state = use_case.execute(self._analyzed())

        actionable = [d for d in state.decisions if d.is_actionable]
        assert {d.symbol: d.quantity for d in actionable} == {"MSFT": 5, "AAPL": 3}
        assert all(d.origin is DecisionOrigin.DELEGATED for d in actionable)

    def test_reasoning_failure_falls_back_to_rules(self) -> None:
        reasoning = MagicMock(spec=ReasoningPort)
        reasoning.propose_trades.side_effect = SourceUnavailableError(
            "reasoning", "trades", "timeout"
        )
        use_case = MakeDecisionsUseCase(DecisionEngine(), reasoning, use_delegated_policy=True)

        state = use_case.execute(self._analyzed(aapl=0.8))

        assert state.status is CycleStatus.DECISIONS_MADE
        buy = next(d for d in state.decisions if d.symbol == "AAPL")
        assert buy.origin is DecisionOrigin.RULE
        assert buy.quantity == 100

    def test_prompt_quotes_portfolio_and_recent_trades(self) -> None:
        reasoning = MagicMock(spec=ReasoningPort)
        reasoning.propose_trades.return_value = ""
        trade_repo = MagicMock(spec=TradeRepository)
        trade_repo.list_trades.return_value = [
            ExecutedTrade(AGENT_ID, "AAPL", TradeAction.BUY, 10, Decimal("150"),
                          Decimal("1500"), "", 0.5, 0.5, NOW)
        ]
        use_case = MakeDecisionsUseCase(
            DecisionEngine(), reasoning, trade_repo, use_delegated_policy=True
        )

        use_case.execute(self._analyzed())

        portfolio_summary, sentiment_summary = reasoning.propose_trades.call_args[0]
        assert "Cash: $100000.00" in portfolio_summary
        assert "2024-03-15 BUY 10 AAPL @ $150.00" in portfolio_summary
        assert sentiment_summary.startswith("AAPL: price $150.00, sentiment 0.500")
        trade_repo.list_trades.assert_called_once_with(agent_id=AGENT_ID, limit=10)

    def test_engine_crash_yields_no_decisions(self) -> None:
        engine = MagicMock(spec=DecisionEngine)
        engine.decide.side_effect = RuntimeError("boom")

        state = MakeDecisionsUseCase(engine).execute(self._analyzed())

        assert state.status is CycleStatus.DECISION_MAKING_FAILED
        assert state.decisions == ()
        assert "boom" in state.errors[-1]


# ===================================================================
# Execution and recording
# ===================================================================


def _decision(symbol, action, quantity, price) -> TradeDecision:
    return TradeDecision(symbol, action, quantity, Decimal(price), "test", 0.6, 0.6)


class TestExecuteTradesUseCase:
    """Tests for ordering, the trade cap and failure handling."""

    def _state_with_decisions(self) -> CycleState:
        portfolio = make_portfolio("1000", make_position("TSLA", 100, "100"))
        return _state(
            ("AAPL", "TSLA"),
            portfolio=portfolio,
            prices={"AAPL": Decimal("50"), "TSLA": Decimal("100")},
            decisions=(
                _decision("AAPL", TradeAction.BUY, 30, "50"),
                _decision("MSFT", TradeAction.HOLD, 0, "300"),
                _decision("TSLA", TradeAction.SELL, 50, "100"),
            ),
        )

    def test_sells_run_before_buys(self) -> None:
        # the BUY costs 1500 and only becomes affordable after the SELL
        state = ExecuteTradesUseCase(PortfolioLedger()).execute(self._state_with_decisions(), NOW)

        assert state.status is CycleStatus.TRADES_EXECUTED
        assert [(t.action, t.symbol) for t in state.trades] == [
            (TradeAction.SELL, "TSLA"),
            (TradeAction.BUY, "AAPL"),
        ]
        assert state.portfolio.cash == Decimal("4500")
        assert state.portfolio.position("TSLA").quantity == 50
        assert state.rejections == ()

    def test_trade_cap(self) -> None:
        use_case = ExecuteTradesUseCase(PortfolioLedger(), max_trades=1)

        state = use_case.execute(self._state_with_decisions(), NOW)

        assert len(state.trades) == 1
        assert len(state.rejections) == 1
        assert state.rejections[0].reason == "trade cap reached"

    def test_ledger_crash_keeps_portfolio(self) -> None:
        ledger = MagicMock(spec=PortfolioLedger)
        ledger.execute.side_effect = RuntimeError("boom")
        ledger.revalue.side_effect = lambda portfolio, prices: portfolio
        before = self._state_with_decisions()

        state = ExecuteTradesUseCase(ledger).execute(before, NOW)

        assert state.status is CycleStatus.TRADE_EXECUTION_FAILED
        assert state.trades == ()
        assert state.portfolio == before.portfolio


class TestRecordCycleUseCase:
    """Tests for the atomic cycle commit."""

    def _executed(self) -> CycleState:
        portfolio = make_portfolio("91000", make_position("AAPL", 100, "90", "100"))
        return _state(("AAPL",), portfolio=portfolio)

    def test_commits_snapshot_against_starting_cash(self) -> None:
        store = MagicMock(spec=TradingStore)
        store.latest_snapshot.return_value = None

        state = RecordCycleUseCase(store).execute(self._executed(), make_agent(), NOW)

        assert state.status is CycleStatus.SNAPSHOT_SAVED
        assert state.snapshot.portfolio_value == Decimal("101000")
        assert state.snapshot.daily_return == pytest.approx(0.01)
        agent, portfolio, trades, snapshot = store.commit_cycle.call_args[0]
        assert agent.current_value == Decimal("101000")
        assert agent.cash == Decimal("91000")
        assert trades == []
        assert snapshot is state.snapshot

    def test_return_against_previous_snapshot(self) -> None:
        store = MagicMock(spec=TradingStore)
        store.latest_snapshot.return_value = DailyPerformanceSnapshot(
            AGENT_ID, date(2024, 3, 14), Decimal("101000"), Decimal("91000"), 0.01
        )

        state = RecordCycleUseCase(store).execute(self._executed(), make_agent(), NOW)

        assert state.snapshot.daily_return == 0.0
        store.latest_snapshot.assert_called_once_with(AGENT_ID, before=AS_OF)

    def test_store_failure(self) -> None:
        store = MagicMock(spec=TradingStore)
        store.latest_snapshot.return_value = None
        store.commit_cycle.side_effect = PersistenceError("commit_cycle", "disk full")

        state = RecordCycleUseCase(store).execute(self._executed(), make_agent(), NOW)

        assert state.status is CycleStatus.SNAPSHOT_FAILED
        assert state.snapshot is None
        assert "disk full" in state.errors[-1]
