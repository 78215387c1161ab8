# gst.py
import math
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum


class GstType(str, Enum):
    NONE = "none"
    IGST = "IGST"            # interstate
    CGST_SGST = "CGST_SGST"  # intrastate, split in two halves


GST_RATES = [0, 5, 12, 18, 28]


@dataclass(frozen=True)
class GstBreakdown:
    taxable_amount: float
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    igst_amount: float = 0.0
    total_gst_amount: float = 0.0
    total_amount: float = 0.0

    def as_dict(self) -> dict:
        return asdict(self)


def round2(value: float) -> float:
    """Round half-up at the second decimal."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def to_amount(value) -> float:
    """Parse a user-supplied number; blanks and garbage count as 0."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(parsed) or math.isinf(parsed):
        return 0.0
    return parsed


def parse_gst_type(value) -> GstType:
    if isinstance(value, GstType):
        return value
    try:
        return GstType(value)
    except ValueError:
        return GstType.NONE


def calc_gst(taxable_amount, gst_type, gst_percent) -> GstBreakdown:
    """Compute the GST components and bill total.

    Each component is rounded on its own. For CGST_SGST the two halves are
    rounded separately from the total, so cgst + sgst can differ from
    total_gst_amount by 0.01; the bill total always uses the unhalved tax.
    """
    taxable = to_amount(taxable_amount)
    pct = to_amount(gst_percent)
    kind = parse_gst_type(gst_type)

    if kind is GstType.NONE or pct == 0:
        return GstBreakdown(taxable_amount=taxable, total_amount=taxable)

    total_gst = round2(taxable * pct / 100)

    if kind is GstType.IGST:
        return GstBreakdown(
            taxable_amount=taxable,
            igst_amount=total_gst,
            total_gst_amount=total_gst,
            total_amount=round2(taxable + total_gst),
        )

    half = round2(total_gst / 2)
    return GstBreakdown(
        taxable_amount=taxable,
        cgst_amount=half,
        sgst_amount=half,
        total_gst_amount=total_gst,
        total_amount=round2(taxable + total_gst),
    )
