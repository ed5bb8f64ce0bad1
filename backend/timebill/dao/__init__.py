"""
Data access objects.

One DAO per table family. Services compose them inside a single
session; DAOs flush but never commit.
"""

from timebill.dao.base import BaseDAO
from timebill.dao.user import UserDAO, MatterDAO
from timebill.dao.billing_code import BillingCodeDAO, RoleRateDAO
from timebill.dao.time_entry import TimeEntryDAO
from timebill.dao.invoice import InvoiceDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "MatterDAO",
    "BillingCodeDAO",
    "RoleRateDAO",
    "TimeEntryDAO",
    "InvoiceDAO",
]
