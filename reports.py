# reports.py
"""Bill exports: ordered rows and their CSV rendering."""
from datetime import date
from typing import List, Optional

import pandas as pd
from sqlalchemy.orm import Session, joinedload, selectinload

from crud import query_transactions
from models import Transaction, TransactionKind

EXPORT_COLUMNS = [
    "Bill Number", "Party Name", "Party Mobile", "GST Number", "Material Type",
    "Weight", "Weight Unit", "Rate Per Kg", "Taxable Amount", "GST Type", "Total GST",
    "Total Amount", "Paid Amount", "Pending Amount", "Status",
    "Bill Date", "Due Date", "Financial Year", "Notes",
]


def _fmt_date(d: Optional[date]) -> str:
    return d.strftime("%d/%m/%Y") if d else ""


def bill_row(t: Transaction) -> dict:
    party = t.party
    return {
        "Bill Number": t.bill_number,
        "Party Name": party.name if party else "",
        "Party Mobile": party.mobile if party else "",
        "GST Number": party.tax_id if party else "",
        "Material Type": t.material_type,
        "Weight": t.weight,
        "Weight Unit": t.weight_unit.value,
        "Rate Per Kg": t.rate_per_kg,
        "Taxable Amount": t.taxable_amount,
        "GST Type": t.gst_type.value,
        "Total GST": t.total_gst_amount,
        "Total Amount": t.total_amount,
        "Paid Amount": t.paid_amount,
        "Pending Amount": t.pending_amount,
        "Status": t.status.value,
        "Bill Date": _fmt_date(t.bill_date),
        "Due Date": _fmt_date(t.due_date),
        "Financial Year": t.financial_year,
        "Notes": t.notes or "",
    }


def export_rows(db: Session, owner_id: int, kind: TransactionKind, financial_year: Optional[str] = None,
                start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[dict]:
    txns = (
        query_transactions(db, owner_id, kind, financial_year, start_date=start_date, end_date=end_date)
        .options(joinedload(Transaction.party), selectinload(Transaction.payments))
        .order_by(Transaction.bill_date.desc(), Transaction.id.desc())
        .all()
    )
    return [bill_row(t) for t in txns]


def to_csv(rows: List[dict], sep: str = ",") -> str:
    """Render rows with a header line; values containing ``sep`` get quoted."""
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    return df.to_csv(index=False, sep=sep)
