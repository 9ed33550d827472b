from .sales import Sale, AdditionalPayment
from .documents import ReturnTransaction, Expense, DailyCounter, CustomerLedgerLock

__all__ = [
    'Sale', 'AdditionalPayment',
    'ReturnTransaction', 'Expense', 'DailyCounter', 'CustomerLedgerLock',
]
