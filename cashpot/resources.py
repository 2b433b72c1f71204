import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cashpot import models, schemas
from cashpot.crud import EmptyFields, MissingRecords, PrepareHook, Repository, to_dict
from cashpot.db import get_db
from cashpot.derive import derive_expiry, split_lines
from cashpot.responses import Envelope, ok
from cashpot.security import get_password_hash

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

ERROR_RESPONSES = {
    400: {"model": Envelope, "description": "Validation error"},
    404: {"model": Envelope, "description": "Not found"},
    409: {"model": Envelope, "description": "Conflict"},
}

# (db, serialized rows) -> None; adds computed keys in place
Decorator = Callable[[Session, list[dict]], None]


@dataclass
class ResourceSpec:
    path: str
    label: str
    model: type
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    search_fields: tuple[str, ...] = ()
    prepare: Optional[PrepareHook] = None
    hidden: tuple[str, ...] = ()
    decorate: Optional[Decorator] = None
    tags: list[str] = field(default_factory=list)

    def repository(self, db: Session) -> Repository:
        return Repository(db, self.model, prepare=self.prepare)

    def serialize(self, db: Session, records: list[Any]) -> list[dict]:
        rows = [to_dict(record, hidden=self.hidden) for record in records]
        if self.decorate is not None:
            self.decorate(db, rows)
        return rows


# --- derived fields ---


def prepare_game_mix(data: dict, existing) -> dict:
    if "games" in data or existing is None:
        games = split_lines(data.get("games"))
        data["games"] = games
        data["game_count"] = len(games)
    return data


def prepare_serials(data: dict, existing) -> dict:
    if "serial_numbers" in data or existing is None:
        lines = split_lines(data.get("serial_numbers"))
        data["serial_numbers"] = "\n".join(lines) if lines else None
        data["serial_count"] = len(lines)
    return data


def prepare_certificate(data: dict, existing) -> dict:
    data = prepare_serials(data, existing)
    issue_date = data.get("issue_date")
    if issue_date is None:
        return data
    if existing is None:
        if data.get("expiry_date") is None:
            data["expiry_date"] = derive_expiry(issue_date)
    elif issue_date != existing.issue_date:
        # a full-record save echoes the stored expiry; only a changed one is a manual edit
        submitted = data.get("expiry_date")
        if submitted is None or submitted == existing.expiry_date:
            data["expiry_date"] = derive_expiry(issue_date)
    return data


def prepare_user(data: dict, existing) -> dict:
    password = data.pop("password", None)
    if password:
        data["password_hash"] = get_password_hash(password)
    return data


# --- name resolution ---


def _names(db: Session, model: type, ids: set) -> dict[int, str]:
    ids = {record_id for record_id in ids if record_id is not None}
    if not ids:
        return {}
    rows = db.execute(select(model.id, model.name).where(model.id.in_(ids)))
    return {row.id: row.name for row in rows}


def resolve_name(lookup: dict[int, str], record_id: Optional[int]) -> str:
    if record_id is None:
        return UNKNOWN
    return lookup.get(record_id, UNKNOWN)


def decorate_slot_machines(db: Session, rows: list[dict]) -> None:
    lookups = {
        "provider": (models.Provider, "provider_id"),
        "location": (models.Location, "location_id"),
        "cabinet": (models.Cabinet, "cabinet_id"),
        "game_mix": (models.GameMix, "game_mix_id"),
    }
    for prefix, (model, key) in lookups.items():
        names = _names(db, model, {row[key] for row in rows})
        for row in rows:
            row[f"{prefix}_name"] = resolve_name(names, row[key])


RESOURCES = [
    ResourceSpec("companies", "company", models.Company, schemas.CompanyCreate, schemas.CompanyUpdate,
                 search_fields=("name", "registration_number", "tax_id", "contact_person")),
    ResourceSpec("locations", "location", models.Location, schemas.LocationCreate, schemas.LocationUpdate,
                 search_fields=("name", "address", "city")),
    ResourceSpec("providers", "provider", models.Provider, schemas.ProviderCreate, schemas.ProviderUpdate,
                 search_fields=("name", "company_name", "contact_person")),
    ResourceSpec("platforms", "platform", models.Platform, schemas.PlatformCreate, schemas.PlatformUpdate,
                 search_fields=("name", "description")),
    ResourceSpec("cabinets", "cabinet", models.Cabinet, schemas.CabinetCreate, schemas.CabinetUpdate,
                 search_fields=("name", "location", "game_mix")),
    ResourceSpec("game-mixes", "game mix", models.GameMix, schemas.GameMixCreate, schemas.GameMixUpdate,
                 search_fields=("name",), prepare=prepare_game_mix),
    ResourceSpec("slot-machines", "slot machine", models.SlotMachine, schemas.SlotMachineCreate,
                 schemas.SlotMachineUpdate, search_fields=("serial_number", "model"),
                 decorate=decorate_slot_machines),
    ResourceSpec("invoices", "invoice", models.Invoice, schemas.InvoiceCreate, schemas.InvoiceUpdate,
                 search_fields=("invoice_number", "serial_number", "description")),
    ResourceSpec("metrology", "certificate", models.MetrologyCertificate, schemas.MetrologyCertificateCreate,
                 schemas.MetrologyCertificateUpdate,
                 search_fields=("certificate_number", "serial_number", "serial_numbers", "issuing_authority"),
                 prepare=prepare_certificate),
    ResourceSpec("metrology-approvals", "approval", models.MetrologyApproval, schemas.MetrologyApprovalCreate,
                 schemas.MetrologyApprovalUpdate, search_fields=("name",)),
    ResourceSpec("metrology-commissions", "commission", models.MetrologyCommission,
                 schemas.MetrologyCommissionCreate, schemas.MetrologyCommissionUpdate,
                 search_fields=("name", "serial_numbers"), prepare=prepare_serials),
    ResourceSpec("metrology-authorities", "authority", models.MetrologyAuthority,
                 schemas.MetrologyAuthorityCreate, schemas.MetrologyAuthorityUpdate,
                 search_fields=("name", "address")),
    ResourceSpec("metrology-software", "software", models.MetrologySoftware, schemas.MetrologySoftwareCreate,
                 schemas.MetrologySoftwareUpdate, search_fields=("name", "serial_numbers"),
                 prepare=prepare_serials),
    ResourceSpec("jackpots", "jackpot", models.Jackpot, schemas.JackpotCreate, schemas.JackpotUpdate,
                 search_fields=("name", "jackpot_type")),
    ResourceSpec("legal-documents", "legal document", models.LegalDocument, schemas.LegalDocumentCreate,
                 schemas.LegalDocumentUpdate, search_fields=("name", "document_type", "category")),
    ResourceSpec("users", "user", models.User, schemas.UserCreate, schemas.UserUpdate,
                 search_fields=("username", "email", "first_name", "last_name"),
                 prepare=prepare_user, hidden=("password_hash",)),
]


def _validate(schema: type[BaseModel], body: dict) -> dict:
    try:
        return schema.model_validate(body).model_dump(exclude_unset=True)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


def _pagination(page: int, limit: int, total: int) -> dict:
    return {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total_items": total,
        "items_per_page": limit,
    }


def build_router(spec: ResourceSpec) -> APIRouter:
    router = APIRouter(prefix=f"/api/{spec.path}", tags=spec.tags or [spec.label.title()],
                       responses=ERROR_RESPONSES)
    not_found = f"{spec.label} not found"
    has_status = "status" in spec.model.__table__.columns
    paginated = spec.path == "cabinets"

    def _get_or_404(repo: Repository, record_id: int):
        record = repo.get(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail=not_found)
        return record

    def _conflict(repo: Repository, exc: IntegrityError) -> HTTPException:
        repo.db.rollback()
        logger.warning("integrity error on %s: %s", spec.label, exc.orig)
        return HTTPException(status_code=409, detail=f"{spec.label} already exists")

    @router.get("")
    def list_records(
        sort: Optional[str] = Query(default=None),
        status_filter: Optional[str] = Query(default=None, alias="status"),
        search: Optional[str] = Query(default=None),
        provider: Optional[str] = Query(default=None),
        page: Optional[int] = Query(default=None, ge=1),
        limit: Optional[int] = Query(default=None, ge=1, le=500),
        db: Session = Depends(get_db),
    ) -> dict:
        repo = spec.repository(db)
        filters = {"status": status_filter} if has_status else {}
        try:
            query = repo.query(sort=sort, search=search, search_fields=spec.search_fields, **filters)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if not paginated:
            return ok(spec.serialize(db, list(db.scalars(query))))

        if provider:
            query = query.where(func.lower(spec.model.provider).like(f"%{provider.lower()}%"))
        if page is None and limit is None:
            rows = list(db.scalars(query))
            return ok(spec.serialize(db, rows), pagination=_pagination(1, len(rows), len(rows)))
        page, limit = page or 1, limit or 10
        rows, total = repo.page(query, page, limit)
        return ok(spec.serialize(db, rows), pagination=_pagination(page, limit, total))

    @router.get("/{record_id}")
    def get_record(record_id: int, db: Session = Depends(get_db)) -> dict:
        record = _get_or_404(spec.repository(db), record_id)
        return ok(spec.serialize(db, [record])[0])

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_record(payload: spec.create_schema, db: Session = Depends(get_db)) -> dict:
        repo = spec.repository(db)
        try:
            record = repo.create(payload.model_dump())
        except EmptyFields as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except IntegrityError as exc:
            raise _conflict(repo, exc) from exc
        return ok(spec.serialize(db, [record])[0])

    @router.put("/{record_id}")
    @router.patch("/{record_id}")
    def update_record(record_id: int, payload: spec.update_schema, db: Session = Depends(get_db)) -> dict:
        repo = spec.repository(db)
        patch = payload.model_dump(exclude_unset=True)
        record = _get_or_404(repo, record_id)
        try:
            record = repo.update(record, patch)
        except EmptyFields as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except IntegrityError as exc:
            raise _conflict(repo, exc) from exc
        return ok(spec.serialize(db, [record])[0])

    @router.delete("/{record_id}")
    def delete_record(record_id: int, db: Session = Depends(get_db)) -> dict:
        repo = spec.repository(db)
        repo.delete(_get_or_404(repo, record_id))
        return ok({"success": True, "id": record_id})

    @router.post("/bulk-delete")
    def bulk_delete(payload: schemas.BulkDeleteRequest, db: Session = Depends(get_db)) -> dict:
        deleted = spec.repository(db).bulk_delete(payload.ids)
        return ok({"success": True, "deleted": deleted})

    @router.post("/bulk-update")
    def bulk_update(payload: schemas.BulkUpdateRequest, db: Session = Depends(get_db)) -> dict:
        patch = _validate(spec.update_schema, payload.patch)
        if not patch:
            raise HTTPException(status_code=400, detail="patch has no known fields")
        repo = spec.repository(db)
        try:
            records = repo.bulk_update(payload.ids, patch)
        except MissingRecords as exc:
            raise HTTPException(status_code=404, detail=f"{not_found}: {exc.ids}") from exc
        except EmptyFields as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except IntegrityError as exc:
            raise _conflict(repo, exc) from exc
        return ok({"updated": len(records), "records": spec.serialize(db, records)})

    return router


def build_stats(db: Session) -> dict:
    """Record counts per resource, with status tallies where a status exists."""
    stats: dict[str, Any] = {}
    for spec in RESOURCES:
        repo = spec.repository(db)
        entry: dict[str, Any] = {"total": repo.count()}
        if "status" in spec.model.__table__.columns:
            rows = db.execute(
                select(spec.model.status, func.count()).group_by(spec.model.status)
            )
            entry["by_status"] = {row[0]: row[1] for row in rows}
        stats[spec.path] = entry
    slots = db.execute(
        select(models.SlotMachine.ownership_type, func.count()).group_by(models.SlotMachine.ownership_type)
    )
    stats["slot-machines"]["by_ownership"] = {row[0]: row[1] for row in slots}
    return stats


__all__ = ["RESOURCES", "ResourceSpec", "build_router", "build_stats", "resolve_name"]
