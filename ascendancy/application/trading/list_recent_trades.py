"""
Use case: Page through the trade history.

Input:  ListTradesQuery (agent_id?, action?, limit, offset)
Output: TradePage
"""

import logging

from ascendancy.application.trading.dtos import ListTradesQuery, TradePage, TradeView
from ascendancy.domain.trading.entities import ExecutedTrade, TradeAction
from ascendancy.domain.trading.ports import TradeRepository

logger = logging.getLogger(__name__)


def to_trade_view(trade: ExecutedTrade) -> TradeView:
    return TradeView(
        id=str(trade.id),
        agent_id=trade.agent_id,
        symbol=trade.symbol,
        action=trade.action.value,
        quantity=trade.quantity,
        price=trade.price,
        total_value=trade.total_value,
        reasoning=trade.reasoning,
        confidence=trade.confidence,
        sentiment_score=trade.sentiment_score,
        executed_at=trade.executed_at,
        realized_pnl=trade.realized_pnl,
    )


class ListRecentTradesUseCase:
    """Returns recent trades, newest first."""

    def __init__(self, trade_repo: TradeRepository) -> None:
        self._trade_repo = trade_repo

    def execute(self, query: ListTradesQuery) -> TradePage:
        action = TradeAction(query.action.upper()) if query.action else None
        trades = self._trade_repo.list_trades(
            agent_id=query.agent_id,
            action=action,
            limit=query.limit,
            offset=query.offset,
        )
        total = self._trade_repo.count_trades(agent_id=query.agent_id)
        logger.debug(
            "Listed %d trades (agent=%s action=%s offset=%d)",
            len(trades),
            query.agent_id or "ALL",
            query.action or "ALL",
            query.offset,
        )
        return TradePage(
            items=[to_trade_view(t) for t in trades],
            total=total,
            limit=query.limit,
            offset=query.offset,
        )
