from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ..config import settings
from .models import ReceiptTaxSummary, TaxBreakdown


def decompose_tax(amount: Decimal, rate: Optional[Decimal] = None) -> TaxBreakdown:
    # Prices already include GST: amount = base * (1 + rate).
    amount = Decimal(str(amount))
    r = settings.gst_rate if rate is None else Decimal(str(rate))
    base = amount / (Decimal("1") + r)
    return TaxBreakdown(base_amount=base, tax=amount - base)


def receipt_tax_summary(total: Decimal, rate: Optional[Decimal] = None) -> ReceiptTaxSummary:
    """
    Receipt footer figures: GST shown as two equal halves (CGST/SGST) and the
    bill rounded to a whole unit. Presentation only; never fed back into totals.
    """
    total = Decimal(str(total))
    tb = decompose_tax(total, rate)
    half = tb.tax / 2
    net = total.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return ReceiptTaxSummary(
        amount_before_tax=tb.base_amount,
        cgst=half,
        sgst=tb.tax - half,
        round_off=net - total,
        net_amount=net,
    )
