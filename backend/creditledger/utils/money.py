from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")


def to_decimal(v) -> Decimal:
    """Coerce numbers and numeric strings to Decimal; None and "" become 0."""
    if isinstance(v, Decimal):
        d = v
    elif v is None or v == "":
        return Decimal("0")
    else:
        try:
            d = Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f"Not a number: {v!r}")
    if not d.is_finite():
        raise ValueError(f"Not a number: {v!r}")
    return d


def round2(v) -> Decimal:
    return to_decimal(v).quantize(CENT, rounding=ROUND_HALF_UP)
