# faturacao_app/models/__init__.py
# -*- coding: utf-8 -*-
from .user import User
from .payment import Payment, MpesaTransaction
from .document import DocumentBase, Invoice, Quotation, Receipt, DocumentItem, DocumentSequence
from .party import Issuer, Recipient
from .log import SystemLog


__all__ = [
    "User",
    "Payment",
    "MpesaTransaction",
    "DocumentBase",
    "Invoice",
    "Quotation",
    "Receipt",
    "DocumentItem",
    "DocumentSequence",
    "Issuer",
    "Recipient",
    "SystemLog",
]
