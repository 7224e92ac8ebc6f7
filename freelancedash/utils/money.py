from decimal import Decimal, ROUND_HALF_UP


def format_money(value):
    if value is None:
        return None
    return float(
        Decimal(value).quantize(Decimal("0.00"), rounding=ROUND_HALF_UP)
    )


def to_decimal(value):
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.00"), rounding=ROUND_HALF_UP)


def round_half_up(value):
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
