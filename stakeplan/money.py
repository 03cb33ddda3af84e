"""
Currency rounding helpers.

Every component rounds through these functions so that stakes, profits,
targets and table cells all sit on the same cent grid.
"""
import math
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, localcontext

__all__ = ["round_half_up", "round_currency", "round_to_step", "ceil_currency"]

# Floor on the working precision; long compounding sessions raise it further.
_PRECISION = 80


def _precision_for(value: Decimal, places: int) -> int:
    """Digits needed to hold `value` quantized to `places` decimals."""
    return max(_PRECISION, value.adjusted() + places + 10)


def round_half_up(value: float, places: int = 2) -> float:
    """Rounds `value` to `places` decimals, ties away from zero."""
    if not math.isfinite(value):
        return value
    exact = Decimal(str(value))
    with localcontext() as ctx:
        ctx.prec = _precision_for(exact, places)
        quantum = Decimal(1).scaleb(-places)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def round_currency(value: float) -> float:
    return round_half_up(value, 2)


def round_to_step(value: float, step: float) -> float:
    """Rounds `value` to the nearest multiple of `step`, then to cents."""
    if step <= 0 or not math.isfinite(value):
        return value
    exact = Decimal(str(value))
    quantum = Decimal(str(step))
    with localcontext() as ctx:
        ctx.prec = max(_PRECISION, exact.adjusted() - quantum.adjusted() + 10)
        steps = exact / quantum
        nearest = steps.quantize(Decimal(1), rounding=ROUND_HALF_UP)
        snapped = float(nearest * quantum)
    return round_currency(snapped)


def ceil_currency(value: float) -> float:
    """
    Rounds `value` up to the next cent.

    Float noise is dropped at the sixth decimal first, so 45.590000000000003
    stays at 45.59.
    """
    if not math.isfinite(value):
        return value
    exact = Decimal(str(value))
    with localcontext() as ctx:
        ctx.prec = _precision_for(exact, 6)
        cleaned = exact.quantize(Decimal("0.000001"), rounding=ROUND_HALF_UP)
        return float(cleaned.quantize(Decimal("0.01"), rounding=ROUND_CEILING))
