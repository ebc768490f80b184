"""Central enum of permission names to avoid typos in handler code.
Names are stored verbatim in the permissions table and compared case-sensitively.
Never rename a member silently; add a new one and migrate role assignments.
"""
from __future__ import annotations
from enum import Enum
from typing import List, Dict


class Perm(str, Enum):
    VENDOR_VIEW = 'vendor_view'
    VENDOR_EDIT = 'vendor_edit'
    FINANCIAL_VIEW = 'financial_view'
    FINANCIAL_EDIT = 'financial_edit'
    PAYMENT_VIEW = 'payment_view'
    PAYMENT_EDIT = 'payment_edit'
    EDIT_COMPANY_DETAILS = 'edit_company_details'

    def __str__(self) -> str:
        return self.value


PERMISSION_DESCRIPTIONS: Dict[Perm, str] = {
    Perm.VENDOR_VIEW: 'View vendors',
    Perm.VENDOR_EDIT: 'Create, update and delete vendors',
    Perm.FINANCIAL_VIEW: 'View invoices, purchase orders and transaction details',
    Perm.FINANCIAL_EDIT: 'Edit invoices, purchase orders and transactions',
    Perm.PAYMENT_VIEW: 'View payment transactions',
    Perm.PAYMENT_EDIT: 'Record payment transactions',
    Perm.EDIT_COMPANY_DETAILS: 'Create and update the company profile',
}


def all_permission_names() -> List[str]:
    return [p.value for p in Perm]

ALL_PERMISSION_NAMES = all_permission_names()

ROLE_PRESETS: Dict[str, List[Perm]] = {
    'Finance Viewer': [Perm.FINANCIAL_VIEW, Perm.PAYMENT_VIEW],
    'Finance Editor': [Perm.FINANCIAL_VIEW, Perm.FINANCIAL_EDIT, Perm.PAYMENT_VIEW, Perm.PAYMENT_EDIT],
    'Vendor Manager': [Perm.VENDOR_VIEW, Perm.VENDOR_EDIT],
    'Office Admin': list(Perm),
}
