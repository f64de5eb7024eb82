from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PaymentIn(BaseModel):
    amount: Decimal
    payment_date: Optional[date] = None
    method: str = "cash"
    reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    invoice_id: int
    payment_date: Optional[date] = None
    amount: Decimal
    method: str
    reference: Optional[str] = None
    notes: Optional[str] = None


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    invoice_number: str
    customer_id: Optional[int] = None
    invoice_date: Optional[date] = None
    status: str
    total_amount: Decimal
    amount_paid: Decimal
    credits_applied: Decimal
    balance_remaining: Decimal
    updated_at: Optional[datetime] = None
    payments: List[PaymentOut] = []
