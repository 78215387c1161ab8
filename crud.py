# crud.py
"""Owner-scoped reads and writes for parties, bills, payments and lots.

Every function takes the owner id explicitly. Rows that belong to another
owner are reported as missing.
"""
import logging
import math
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload, selectinload

import dashboard
import schemas
from attachments import AttachmentStore, AttachmentUpload, release
from errors import ConflictError, NotFoundError, ValidationError
from financial_year import current_financial_year, fiscal_year, fiscal_year_range
from gst import calc_gst, parse_gst_type, to_amount
from ledger import PaymentStatus, party_balance
from models import Lot, LotLink, Party, PartyRole, Payment, Transaction, TransactionKind
from reconciliation import LotStatus

logger = logging.getLogger(__name__)

GST_FIELDS = ("taxable_amount", "gst_type", "gst_percent")
REQUIRED_BILL_FIELDS = (
    "bill_number", "party_id", "material_type", "weight", "rate_per_kg", "taxable_amount", "bill_date",
)
NON_NEGATIVE_BILL_FIELDS = ("weight", "rate_per_kg", "taxable_amount", "gst_percent")
LINK_FIELDS = ("transaction_id", "weight", "rate", "amount")


def _require(values: dict, fields) -> None:
    for name in fields:
        value = values.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{name} is required.", field=name)


def _require_non_negative(values: dict, fields) -> None:
    for name in fields:
        value = values.get(name)
        if value is not None and (not math.isfinite(value) or value < 0):
            raise ValidationError(f"{name} must be a non-negative number.", field=name)


def _label(kind: TransactionKind) -> str:
    return kind.value.capitalize()


def _check_financial_year(label: Optional[str]) -> None:
    if label:
        fiscal_year_range(label)


# ----------------------------------------------------------------------------
# Parties
# ----------------------------------------------------------------------------

def get_party(db: Session, owner_id: int, party_id: int) -> Party:
    party = db.query(Party).filter(Party.id == party_id, Party.owner_id == owner_id).first()
    if not party:
        raise NotFoundError("Party not found.", field="party_id")
    return party


def list_parties(db: Session, owner_id: int, role: Optional[PartyRole] = None,
                 search: Optional[str] = None) -> List[Party]:
    q = db.query(Party).filter(Party.owner_id == owner_id)
    if role:
        q = q.filter(Party.role.in_([role, PartyRole.BOTH]))
    if search:
        q = q.filter(Party.name.ilike(f"%{search}%"))
    return q.order_by(Party.name.asc()).all()


def create_party(db: Session, owner_id: int, data: schemas.PartyCreate) -> Party:
    _require(data.model_dump(), ("name",))
    party = Party(
        owner_id=owner_id,
        name=data.name.strip(),
        mobile=data.mobile.strip(),
        address=data.address,
        tax_id=data.tax_id.strip().upper(),
        role=data.role,
    )
    db.add(party)
    db.commit()
    db.refresh(party)
    logger.info("owner=%s created party %s (%s)", owner_id, party.id, party.name)
    return party


def update_party(db: Session, owner_id: int, party_id: int, data: schemas.PartyUpdate) -> Party:
    party = get_party(db, owner_id, party_id)
    changes = data.model_dump(exclude_unset=True)
    if "name" in changes:
        _require(changes, ("name",))
        changes["name"] = changes["name"].strip()
    if changes.get("tax_id") is not None:
        changes["tax_id"] = changes["tax_id"].strip().upper()
    for key, value in changes.items():
        setattr(party, key, value)
    db.commit()
    db.refresh(party)
    return party


def delete_party(db: Session, owner_id: int, party_id: int) -> None:
    party = get_party(db, owner_id, party_id)
    in_use = db.query(Transaction).filter(Transaction.party_id == party.id).count()
    if in_use:
        raise ConflictError("Cannot delete party with existing transactions.")
    db.delete(party)
    db.commit()
    logger.info("owner=%s deleted party %s", owner_id, party_id)


def party_ledger(db: Session, owner_id: int, party_id: int, financial_year: Optional[str] = None) -> dict:
    party = get_party(db, owner_id, party_id)
    _check_financial_year(financial_year)
    q = (
        db.query(Transaction)
        .options(selectinload(Transaction.payments))
        .filter(Transaction.owner_id == owner_id, Transaction.party_id == party.id)
    )
    if financial_year:
        q = q.filter(Transaction.financial_year == financial_year)
    rows = q.order_by(Transaction.bill_date.desc(), Transaction.id.desc()).all()
    purchases = [t for t in rows if t.kind == TransactionKind.PURCHASE]
    sales = [t for t in rows if t.kind == TransactionKind.SALE]
    return {
        "party": party,
        "purchases": purchases,
        "sales": sales,
        "summary": party_balance(purchases, sales),
    }


# ----------------------------------------------------------------------------
# Purchases and sales
# ----------------------------------------------------------------------------

def query_transactions(db: Session, owner_id: int, kind: Optional[TransactionKind] = None,
                       financial_year: Optional[str] = None, party_id: Optional[int] = None,
                       search: Optional[str] = None, start_date: Optional[date] = None,
                       end_date: Optional[date] = None):
    """Base query shared by the bill list, dashboard and exports."""
    _check_financial_year(financial_year)
    q = db.query(Transaction).filter(Transaction.owner_id == owner_id)
    if kind:
        q = q.filter(Transaction.kind == kind)
    if financial_year:
        q = q.filter(Transaction.financial_year == financial_year)
    if party_id:
        q = q.filter(Transaction.party_id == party_id)
    if search:
        q = q.filter(Transaction.bill_number.ilike(f"%{search}%"))
    if start_date:
        q = q.filter(Transaction.bill_date >= start_date)
    if end_date:
        q = q.filter(Transaction.bill_date <= end_date)
    return q


def _with_details(q):
    return q.options(joinedload(Transaction.party), selectinload(Transaction.payments))


def get_transaction(db: Session, owner_id: int, kind: TransactionKind, txn_id: int) -> Transaction:
    txn = _with_details(query_transactions(db, owner_id, kind)).filter(Transaction.id == txn_id).first()
    if not txn:
        raise NotFoundError(f"{_label(kind)} not found.")
    return txn


def list_transactions(db: Session, owner_id: int, kind: TransactionKind, financial_year: Optional[str] = None,
                      party_id: Optional[int] = None, status: Optional[str] = None,
                      search: Optional[str] = None, start_date: Optional[date] = None,
                      end_date: Optional[date] = None, page: int = 1, limit: int = 50) -> dict:
    """One page of bills, newest first.

    The status filter runs on the fetched page, so ``total`` and ``pages``
    count bills before that filter.
    """
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive.", field="page")
    wanted = None
    if status:
        try:
            wanted = PaymentStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown status: {status}", field="status")

    q = query_transactions(db, owner_id, kind, financial_year, party_id, search, start_date, end_date)
    total = q.count()
    rows = (
        _with_details(q)
        .order_by(Transaction.bill_date.desc(), Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    if wanted:
        rows = [t for t in rows if t.status == wanted]
    return {"items": rows, "total": total, "page": page, "pages": math.ceil(total / limit)}


def create_transaction(db: Session, owner_id: int, kind: TransactionKind, data: schemas.TransactionCreate,
                       attachment: Optional[AttachmentUpload] = None,
                       store: Optional[AttachmentStore] = None) -> Transaction:
    values = data.model_dump()
    _require(values, REQUIRED_BILL_FIELDS)
    _require_non_negative(values, NON_NEGATIVE_BILL_FIELDS)
    get_party(db, owner_id, data.party_id)
    gst = calc_gst(data.taxable_amount, data.gst_type, data.gst_percent)

    stored = store.save(attachment) if attachment is not None else None

    txn = Transaction(
        owner_id=owner_id,
        kind=kind,
        bill_number=data.bill_number.strip(),
        party_id=data.party_id,
        material_type=data.material_type.strip(),
        weight=data.weight,
        weight_unit=data.weight_unit,
        rate_per_kg=data.rate_per_kg,
        gst_type=parse_gst_type(data.gst_type),
        gst_percent=to_amount(data.gst_percent),
        bill_date=data.bill_date,
        due_date=data.due_date,
        financial_year=fiscal_year(data.bill_date),
        attachment_url=stored.url if stored else "",
        attachment_id=stored.storage_id if stored else "",
        notes=data.notes,
        **gst.as_dict(),
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    logger.info("owner=%s created %s %s bill=%s total=%.2f",
                owner_id, kind.value, txn.id, txn.bill_number, txn.total_amount)
    return txn


def update_transaction(db: Session, owner_id: int, kind: TransactionKind, txn_id: int,
                       data: schemas.TransactionUpdate, attachment: Optional[AttachmentUpload] = None,
                       store: Optional[AttachmentStore] = None) -> Transaction:
    txn = get_transaction(db, owner_id, kind, txn_id)
    changes = data.model_dump(exclude_unset=True)
    _require(changes, [f for f in REQUIRED_BILL_FIELDS if f in changes])
    _require_non_negative(changes, NON_NEGATIVE_BILL_FIELDS)
    if "weight_unit" in changes and changes["weight_unit"] is None:
        del changes["weight_unit"]
    if "party_id" in changes:
        get_party(db, owner_id, changes["party_id"])

    if "bill_date" in changes:
        changes["financial_year"] = fiscal_year(changes["bill_date"])

    if any(f in changes for f in GST_FIELDS):
        # untouched GST inputs keep their stored values
        taxable = changes.get("taxable_amount", txn.taxable_amount)
        gst_type = changes.get("gst_type", txn.gst_type)
        gst_percent = changes.get("gst_percent", txn.gst_percent)
        changes.update(calc_gst(taxable, gst_type, gst_percent).as_dict())
        changes["gst_type"] = parse_gst_type(gst_type)
        changes["gst_percent"] = to_amount(gst_percent)

    old_attachment = None
    if attachment is not None:
        stored = store.save(attachment)
        old_attachment = txn.attachment_id
        changes["attachment_url"] = stored.url
        changes["attachment_id"] = stored.storage_id

    for key, value in changes.items():
        setattr(txn, key, value)
    db.commit()
    # the row must point at the new file before the old one goes
    if old_attachment:
        release(store, old_attachment)
    db.refresh(txn)
    logger.info("owner=%s updated %s %s fields=%s", owner_id, kind.value, txn.id, sorted(changes))
    return txn


def delete_transaction(db: Session, owner_id: int, kind: TransactionKind, txn_id: int,
                       store: AttachmentStore) -> None:
    """Delete a bill with its payments and lot allocations."""
    txn = get_transaction(db, owner_id, kind, txn_id)
    attachment_id = txn.attachment_id
    db.delete(txn)
    db.commit()
    release(store, attachment_id)
    logger.info("owner=%s deleted %s %s", owner_id, kind.value, txn_id)


def add_payment(db: Session, owner_id: int, kind: TransactionKind, txn_id: int,
                data: schemas.PaymentCreate) -> Transaction:
    txn = get_transaction(db, owner_id, kind, txn_id)
    if data.amount is None or not math.isfinite(data.amount) or data.amount <= 0:
        raise ValidationError("Valid amount required.", field="amount")
    txn.payments.append(Payment(
        amount=data.amount,
        payment_date=data.payment_date or date.today(),
        mode=data.mode,
        note=data.note,
        reference=data.reference,
    ))
    db.commit()
    db.refresh(txn)
    logger.info("owner=%s paid %.2f on %s %s, status now %s",
                owner_id, data.amount, kind.value, txn.id, txn.status.value)
    return txn


def delete_payment(db: Session, owner_id: int, kind: TransactionKind, txn_id: int, payment_id: int) -> Transaction:
    txn = get_transaction(db, owner_id, kind, txn_id)
    payment = next((p for p in txn.payments if p.id == payment_id), None)
    if payment is None:
        raise NotFoundError("Payment not found.")
    txn.payments.remove(payment)
    db.commit()
    db.refresh(txn)
    return txn


# ----------------------------------------------------------------------------
# Lots
# ----------------------------------------------------------------------------

def _lot_query(db: Session, owner_id: int):
    return (
        db.query(Lot)
        .options(selectinload(Lot.links).joinedload(LotLink.transaction).joinedload(Transaction.party))
        .filter(Lot.owner_id == owner_id)
    )


def get_lot(db: Session, owner_id: int, lot_id: int) -> Lot:
    lot = _lot_query(db, owner_id).filter(Lot.id == lot_id).first()
    if not lot:
        raise NotFoundError("Lot not found.")
    return lot


def list_lots(db: Session, owner_id: int, financial_year: Optional[str] = None,
              material_type: Optional[str] = None, status: Optional[str] = None) -> List[Lot]:
    _check_financial_year(financial_year)
    wanted = None
    if status:
        try:
            wanted = LotStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown lot status: {status}", field="status")
    q = _lot_query(db, owner_id)
    if financial_year:
        q = q.filter(Lot.financial_year == financial_year)
    if material_type:
        q = q.filter(Lot.material_type.ilike(f"%{material_type}%"))
    lots = q.order_by(Lot.created_at.desc(), Lot.id.desc()).all()
    if wanted:
        lots = [l for l in lots if l.status == wanted]
    return lots


def _link_target(db: Session, owner_id: int, kind: TransactionKind, link: schemas.LotLinkCreate) -> Transaction:
    for name in LINK_FIELDS:
        if not getattr(link, name):
            raise ValidationError(f"{kind.value}, weight, rate, amount are required.", field=name)
    txn = query_transactions(db, owner_id, kind).filter(Transaction.id == link.transaction_id).first()
    if not txn:
        raise NotFoundError(f"{_label(kind)} not found.", field="transaction_id")
    return txn


def _build_links(db: Session, owner_id: int, kind: TransactionKind,
                 links: List[schemas.LotLinkCreate]) -> List[Tuple[LotLink, Transaction]]:
    built, seen = [], set()
    for link in links:
        txn = _link_target(db, owner_id, kind, link)
        if txn.id in seen:
            raise ConflictError(f"This {kind.value} is already in the lot.")
        seen.add(txn.id)
        built.append((
            LotLink(kind=kind, transaction_id=txn.id, weight=link.weight, rate=link.rate, amount=link.amount),
            txn,
        ))
    return built


def create_lot(db: Session, owner_id: int, data: schemas.LotCreate) -> Lot:
    _require(data.model_dump(), ("lot_number", "material_type"))
    purchases = _build_links(db, owner_id, TransactionKind.PURCHASE, data.purchases)
    sales = _build_links(db, owner_id, TransactionKind.SALE, data.sales)
    financial_year = purchases[0][1].financial_year if purchases else current_financial_year()

    lot = Lot(
        owner_id=owner_id,
        lot_number=data.lot_number.strip(),
        material_type=data.material_type.strip(),
        description=data.description,
        financial_year=financial_year,
        links=[link for link, _ in purchases + sales],
    )
    db.add(lot)
    db.commit()
    logger.info("owner=%s created lot %s (%s) fy=%s", owner_id, lot.id, lot.lot_number, financial_year)
    return get_lot(db, owner_id, lot.id)


def update_lot(db: Session, owner_id: int, lot_id: int, data: schemas.LotUpdate) -> Lot:
    lot = get_lot(db, owner_id, lot_id)
    for name in ("lot_number", "material_type"):
        if name in data.model_fields_set and not (getattr(data, name) or "").strip():
            raise ValidationError(f"{name} is required.", field=name)
    replacements = {}
    if data.purchases is not None:
        replacements[TransactionKind.PURCHASE] = _build_links(db, owner_id, TransactionKind.PURCHASE, data.purchases)
    if data.sales is not None:
        replacements[TransactionKind.SALE] = _build_links(db, owner_id, TransactionKind.SALE, data.sales)

    if data.lot_number is not None:
        lot.lot_number = data.lot_number.strip()
    if data.material_type is not None:
        lot.material_type = data.material_type.strip()
    if data.description is not None:
        lot.description = data.description

    if replacements:
        for link in [l for l in lot.links if l.kind in replacements]:
            lot.links.remove(link)
        # old rows must be gone before the unique (lot, bill, kind) rows come back
        db.flush()
        for built in replacements.values():
            lot.links.extend(link for link, _ in built)
    db.commit()
    return get_lot(db, owner_id, lot.id)


def add_lot_link(db: Session, owner_id: int, lot_id: int, kind: TransactionKind,
                 data: schemas.LotLinkCreate) -> Lot:
    lot = get_lot(db, owner_id, lot_id)
    txn = _link_target(db, owner_id, kind, data)
    if any(l.kind == kind and l.transaction_id == txn.id for l in lot.links):
        raise ConflictError(f"This {kind.value} is already in the lot.")
    lot.links.append(LotLink(kind=kind, transaction_id=txn.id, weight=data.weight, rate=data.rate, amount=data.amount))
    db.commit()
    logger.info("owner=%s linked %s %s to lot %s", owner_id, kind.value, txn.id, lot.id)
    return get_lot(db, owner_id, lot.id)


def remove_lot_link(db: Session, owner_id: int, lot_id: int, kind: TransactionKind, link_id: int) -> Lot:
    lot = get_lot(db, owner_id, lot_id)
    link = next((l for l in lot.links if l.id == link_id and l.kind == kind), None)
    if link is None:
        raise NotFoundError("Lot entry not found.")
    lot.links.remove(link)
    db.commit()
    return get_lot(db, owner_id, lot.id)


def delete_lot(db: Session, owner_id: int, lot_id: int) -> None:
    lot = get_lot(db, owner_id, lot_id)
    db.delete(lot)
    db.commit()
    logger.info("owner=%s deleted lot %s", owner_id, lot_id)


# ----------------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------------

def get_dashboard(db: Session, owner_id: int, financial_year: Optional[str] = None) -> dashboard.DashboardSummary:
    rows = _with_details(query_transactions(db, owner_id, financial_year=financial_year)).all()
    purchases = [t for t in rows if t.kind == TransactionKind.PURCHASE]
    sales = [t for t in rows if t.kind == TransactionKind.SALE]
    return dashboard.summarize(purchases, sales)
