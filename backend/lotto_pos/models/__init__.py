from .enums import GameStatus, PackStatus, ShiftStatus, BusinessDayStatus, EntryMethod
from .tenancy import Organization, Store
from .auth import User, SessionToken
from .shifts import Terminal, Cashier, Shift, ShiftOpening, ShiftClosing
from .lottery import LotteryGame, LotteryBin, LotteryPack
from .business_day import LotteryBusinessDay, LotteryDayPack

__all__ = [
    'GameStatus', 'PackStatus', 'ShiftStatus', 'BusinessDayStatus', 'EntryMethod',
    'Organization', 'Store',
    'User', 'SessionToken',
    'Terminal', 'Cashier', 'Shift', 'ShiftOpening', 'ShiftClosing',
    'LotteryGame', 'LotteryBin', 'LotteryPack',
    'LotteryBusinessDay', 'LotteryDayPack',
]
