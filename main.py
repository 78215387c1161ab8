import logging
import os
import sys
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Header, Response, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session

import crud
import reports
import schemas
from attachments import AttachmentStore, AttachmentUpload, LocalAttachmentStore
from database import get_db, init_db
from errors import LedgerError, NotFoundError, ValidationError
from financial_year import current_financial_year, fiscal_years_since
from models import PartyRole, TransactionKind

logging.basicConfig(
    level=os.getenv("LEDGER_LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

init_db()

app = FastAPI(title="Scrap Ledger API", version="1.0.0")


@app.exception_handler(LedgerError)
def ledger_error_handler(request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=schemas.ErrorResponse(message=exc.message, field=exc.field).model_dump(),
    )


def get_owner_id(x_owner_id: int = Header(...)) -> int:
    # identity comes from the auth layer in front of this service
    return x_owner_id


SECTIONS = {"purchases": TransactionKind.PURCHASE, "sales": TransactionKind.SALE}


def section_kind(section: str) -> TransactionKind:
    if section not in SECTIONS:
        raise NotFoundError(f"Unknown section: {section}")
    return SECTIONS[section]


def get_attachment_store() -> AttachmentStore:
    return LocalAttachmentStore()


async def read_upload(file: UploadFile) -> AttachmentUpload:
    return AttachmentUpload(
        filename=file.filename or "",
        content_type=file.content_type or "",
        content=await file.read(),
    )


# ----------------------------------------------------------------------------
# Parties
# ----------------------------------------------------------------------------

@app.get("/parties", response_model=List[schemas.PartyRead])
def list_parties(role: Optional[PartyRole] = None, search: Optional[str] = None,
                 owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.list_parties(db, owner_id, role, search)


@app.post("/parties", response_model=schemas.PartyRead, status_code=201)
def create_party(party: schemas.PartyCreate, owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.create_party(db, owner_id, party)


@app.put("/parties/{party_id}", response_model=schemas.PartyRead)
def update_party(party_id: int, party: schemas.PartyUpdate,
                 owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.update_party(db, owner_id, party_id, party)


@app.delete("/parties/{party_id}")
def delete_party(party_id: int, owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    crud.delete_party(db, owner_id, party_id)
    return {"success": True, "message": "Party deleted."}


@app.get("/parties/{party_id}/ledger", response_model=schemas.PartyLedgerRead)
def party_ledger(party_id: int, financial_year: Optional[str] = None,
                 owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.party_ledger(db, owner_id, party_id, financial_year)


# ----------------------------------------------------------------------------
# Purchases and sales share one set of routes
# ----------------------------------------------------------------------------

def bill_router(kind: TransactionKind) -> APIRouter:
    section = next(name for name, k in SECTIONS.items() if k == kind)
    router = APIRouter(prefix=f"/{section}", tags=[section])

    @router.get("", response_model=schemas.TransactionPage)
    def list_bills(financial_year: Optional[str] = None, party: Optional[int] = None,
                   status: Optional[str] = None, search: Optional[str] = None,
                   start_date: Optional[date] = None, end_date: Optional[date] = None,
                   page: int = 1, limit: int = 50,
                   owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
        return crud.list_transactions(db, owner_id, kind, financial_year, party, status,
                                      search, start_date, end_date, page, limit)

    @router.get("/{txn_id}", response_model=schemas.TransactionRead)
    def get_bill(txn_id: int, owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
        return crud.get_transaction(db, owner_id, kind, txn_id)

    @router.post("", response_model=schemas.TransactionRead, status_code=201)
    def create_bill(bill: schemas.TransactionCreate,
                    owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
        return crud.create_transaction(db, owner_id, kind, bill)

    @router.post("/with-attachment", response_model=schemas.TransactionRead, status_code=201)
    async def create_bill_with_attachment(bill: str = Form(...), file: UploadFile = File(...),
                                          owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db),
                                          store: AttachmentStore = Depends(get_attachment_store)):
        """Multipart create: the bill as a JSON form field next to its file."""
        try:
            data = schemas.TransactionCreate.model_validate_json(bill)
        except SchemaError as e:
            loc = e.errors()[0]["loc"]
            raise ValidationError("Invalid bill data.", field=str(loc[0]) if loc else "bill")
        upload = await read_upload(file)
        return crud.create_transaction(db, owner_id, kind, data, attachment=upload, store=store)

    @router.put("/{txn_id}", response_model=schemas.TransactionRead)
    def update_bill(txn_id: int, bill: schemas.TransactionUpdate,
                    owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
        return crud.update_transaction(db, owner_id, kind, txn_id, bill)

    @router.put("/{txn_id}/attachment", response_model=schemas.TransactionRead)
    async def upload_attachment(txn_id: int, file: UploadFile = File(...),
                                owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db),
                                store: AttachmentStore = Depends(get_attachment_store)):
        upload = await read_upload(file)
        return crud.update_transaction(db, owner_id, kind, txn_id, schemas.TransactionUpdate(),
                                       attachment=upload, store=store)

    @router.delete("/{txn_id}")
    def delete_bill(txn_id: int, owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db),
                    store: AttachmentStore = Depends(get_attachment_store)):
        crud.delete_transaction(db, owner_id, kind, txn_id, store)
        return {"success": True, "message": f"{kind.value.capitalize()} deleted."}

    @router.post("/{txn_id}/payments", response_model=schemas.TransactionRead)
    def add_payment(txn_id: int, payment: schemas.PaymentCreate,
                    owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
        return crud.add_payment(db, owner_id, kind, txn_id, payment)

    @router.delete("/{txn_id}/payments/{payment_id}", response_model=schemas.TransactionRead)
    def delete_payment(txn_id: int, payment_id: int,
                       owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
        return crud.delete_payment(db, owner_id, kind, txn_id, payment_id)

    return router


app.include_router(bill_router(TransactionKind.PURCHASE))
app.include_router(bill_router(TransactionKind.SALE))


# ----------------------------------------------------------------------------
# Lots
# ----------------------------------------------------------------------------

@app.get("/lots", response_model=List[schemas.LotRead])
def list_lots(financial_year: Optional[str] = None, material_type: Optional[str] = None,
              status: Optional[str] = None, owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.list_lots(db, owner_id, financial_year, material_type, status)


@app.get("/lots/{lot_id}", response_model=schemas.LotRead)
def get_lot(lot_id: int, owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.get_lot(db, owner_id, lot_id)


@app.post("/lots", response_model=schemas.LotRead, status_code=201)
def create_lot(lot: schemas.LotCreate, owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.create_lot(db, owner_id, lot)


@app.put("/lots/{lot_id}", response_model=schemas.LotRead)
def update_lot(lot_id: int, lot: schemas.LotUpdate,
               owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.update_lot(db, owner_id, lot_id, lot)


@app.delete("/lots/{lot_id}")
def delete_lot(lot_id: int, owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    crud.delete_lot(db, owner_id, lot_id)
    return {"success": True, "message": "Lot deleted."}


@app.post("/lots/{lot_id}/{section}", response_model=schemas.LotRead)
def add_lot_link(lot_id: int, section: str, link: schemas.LotLinkCreate,
                 owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.add_lot_link(db, owner_id, lot_id, section_kind(section), link)


@app.delete("/lots/{lot_id}/{section}/{link_id}", response_model=schemas.LotRead)
def remove_lot_link(lot_id: int, section: str, link_id: int,
                    owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return crud.remove_lot_link(db, owner_id, lot_id, section_kind(section), link_id)


# ----------------------------------------------------------------------------
# Dashboard, reports, financial years
# ----------------------------------------------------------------------------

@app.get("/dashboard", response_model=schemas.DashboardRead)
def get_dashboard(financial_year: Optional[str] = None,
                  owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    return schemas.DashboardRead.model_validate(crud.get_dashboard(db, owner_id, financial_year))


@app.get("/reports/{section}")
def export_bills(section: str, financial_year: Optional[str] = None,
                 start_date: Optional[date] = None, end_date: Optional[date] = None,
                 owner_id: int = Depends(get_owner_id), db: Session = Depends(get_db)):
    rows = reports.export_rows(db, owner_id, section_kind(section), financial_year, start_date, end_date)
    return Response(
        content=reports.to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={section}-{financial_year or 'all'}.csv"},
    )


@app.get("/financial-years")
def financial_years(from_year: int = 2020):
    return {"current": current_financial_year(), "years": fiscal_years_since(from_year)}
