"""
Domain-specific errors for the trading bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""


class TradingDomainError(Exception):
    """Base error for all trading domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class AgentNotFoundError(TradingDomainError):
    """Raised when an agent record cannot be found."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


class TradeRejectedError(TradingDomainError):
    """Raised when a decision fails ledger validation."""

    def __init__(self, symbol: str, reason: str) -> None:
        super().__init__(f"Trade rejected for {symbol}: {reason}")
        self.symbol = symbol
        self.reason = reason


class InsufficientFundsError(TradeRejectedError):
    """Raised when the portfolio lacks cash for a purchase."""

    def __init__(self, symbol: str, required: str, available: str) -> None:
        super().__init__(
            symbol, f"insufficient funds: required {required}, available {available}"
        )
        self.required = required
        self.available = available


class InsufficientSharesError(TradeRejectedError):
    """Raised when a sale exceeds the held quantity."""

    def __init__(self, symbol: str, requested: int, held: int) -> None:
        super().__init__(
            symbol, f"insufficient shares: requested {requested}, held {held}"
        )
        self.requested = requested
        self.held = held


class ConcentrationLimitError(TradeRejectedError):
    """Raised when a purchase would breach the single-position cap."""

    def __init__(self, symbol: str, resulting: str, limit: str) -> None:
        super().__init__(
            symbol, f"position value {resulting} would exceed limit {limit}"
        )
        self.resulting = resulting
        self.limit = limit


class SignalCollectionError(TradingDomainError):
    """Base error for a failed signal collection."""

    def __init__(self, source: str, symbol: str, reason: str) -> None:
        super().__init__(f"{source} signal for {symbol} failed: {reason}")
        self.source = source
        self.symbol = symbol
        self.reason = reason


class SourceUnavailableError(SignalCollectionError):
    """Raised on network failure, timeout or rate limiting of a source."""


class InsufficientDataError(SignalCollectionError):
    """Raised when a source returns too little data to score."""


class ReasoningParseError(TradingDomainError):
    """Raised when a reasoning reply lacks a required field."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"Reasoning reply missing field: {field_name}")
        self.field_name = field_name


class PersistenceError(TradingDomainError):
    """Raised when the persistent store cannot be read or written."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"Persistence failure during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class CycleAlreadyRunningError(TradingDomainError):
    """Raised when a cycle is requested while one is in progress."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"A trading cycle is already running for agent {agent_id}")
        self.agent_id = agent_id
