from .tenancy import Organization, Store
from .auth import User, SessionToken
from .security import SecurityEvent
from .debts import Customer, Debt, DebtPayment, BALANCE_MODE_STORED, BALANCE_MODE_DERIVED, BALANCE_MODES
from .inventory import Product, ProductDevice, InventorySnapshot
from .sales import DeviceSale
from .events import StoreEvent
from .expenses import Expense

__all__ = [
    'Organization', 'Store',
    'User', 'SessionToken', 'SecurityEvent',
    'Customer', 'Debt', 'DebtPayment',
    'BALANCE_MODE_STORED', 'BALANCE_MODE_DERIVED', 'BALANCE_MODES',
    'Product', 'ProductDevice', 'InventorySnapshot',
    'DeviceSale',
    'StoreEvent',
    'Expense',
]
