"""Read-only selectors (query side)."""

from card_kernel.selectors.account_selector import AccountSelector, AccountView
from card_kernel.selectors.base import BaseSelector

__all__ = ["AccountSelector", "AccountView", "BaseSelector"]
