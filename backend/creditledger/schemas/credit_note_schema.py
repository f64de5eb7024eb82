import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreditNoteLineIn(BaseModel):
    product_id: int
    uom: str
    quantity: Decimal
    units_per_box: Optional[int] = None
    # falls back to the product's selling price
    unit_price_excl_vat: Optional[Decimal] = None
    vat_rate: Optional[Decimal] = None


class CreditNoteIn(BaseModel):
    customer_id: int
    lines: List[CreditNoteLineIn] = Field(min_length=1)
    number: Optional[str] = None
    date: Optional[dt.date] = None
    invoice_id: Optional[int] = None
    reason: Optional[str] = None
    reason_note: Optional[str] = None
    status: str = "ISSUED"
    vat_rate: Optional[Decimal] = None


class TransitionIn(BaseModel):
    note: Optional[str] = None


class CreditNoteLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    uom: str
    quantity: Decimal
    units_per_box: Optional[int] = None
    total_qty: int
    unit_price_excl_vat: Decimal
    unit_vat: Decimal
    unit_price_incl_vat: Decimal
    line_total: Decimal


class CreditNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    number: str
    date: dt.date
    customer_id: int
    invoice_id: Optional[int] = None
    reason: Optional[str] = None
    reason_note: Optional[str] = None
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    status: str
    created_at: Optional[dt.datetime] = None
    lines: List[CreditNoteLineOut] = []


class WarningOut(BaseModel):
    type: str
    message: str


class IssueOut(BaseModel):
    credit_note: CreditNoteOut
    movements: int
    warnings: List[WarningOut] = []


class TransitionOut(BaseModel):
    ok: bool = True
    credit_note_id: int
    number: str
    event: str
    previous_status: str
    status: str
    movements: int
    warnings: List[WarningOut] = []
