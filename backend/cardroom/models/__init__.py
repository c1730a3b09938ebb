from .players import Player
from .sessions import DailySession, FloatAddition, SessionSummary
from .transactions import Transaction, TransactionKind, KindSpec, TRANSACTION_KINDS
from .credits import Credit, CreditSettlement, CreditRequest
from .notifications import NotificationEvent

__all__ = [
    'Player',
    'DailySession', 'FloatAddition', 'SessionSummary',
    'Transaction', 'TransactionKind', 'KindSpec', 'TRANSACTION_KINDS',
    'Credit', 'CreditSettlement', 'CreditRequest',
    'NotificationEvent',
]
