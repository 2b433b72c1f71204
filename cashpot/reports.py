"""Fleet reports: the ONJN machine census and the warehouse view."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from cashpot.db import get_db
from cashpot.models import Company, Location, Provider, SlotMachine
from cashpot.resources import RESOURCES, UNKNOWN
from cashpot.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reports"])

SLOT_MACHINES = next(spec for spec in RESOURCES if spec.path == "slot-machines")
NO_COMPANY = "N/A"


def _active(machines: list[SlotMachine]) -> int:
    return sum(1 for machine in machines if machine.status == "active")


def build_onjn_report(
    db: Session,
    company_id: Optional[int] = None,
    location_id: Optional[int] = None,
) -> dict[str, Any]:
    """Machine totals for the ONJN filing, grouped by location and provider.

    A location filter takes precedence over a company filter. Filtering by
    company keeps machines at that company's locations plus machines with no
    location, which are still on the company's books.
    """
    machines = list(db.scalars(select(SlotMachine).order_by(SlotMachine.id)))
    locations = list(db.scalars(select(Location).order_by(Location.id)))
    if location_id is not None:
        machines = [machine for machine in machines if machine.location_id == location_id]
    elif company_id is not None:
        owned_locations = {location.id for location in locations if location.company_id == company_id}
        machines = [
            machine for machine in machines
            if machine.location_id is None or machine.location_id in owned_locations
        ]

    companies = {row.id: row.name for row in db.execute(select(Company.id, Company.name))}
    providers = {row.id: row.name for row in db.execute(select(Provider.id, Provider.name))}

    by_location = []
    for location in locations:
        at_location = [machine for machine in machines if machine.location_id == location.id]
        if not at_location:
            continue
        by_location.append({
            "location_id": location.id,
            "location_name": location.name,
            "city": location.city,
            "county": location.county,
            "company": companies.get(location.company_id) or NO_COMPANY,
            "total_machines": len(at_location),
            "active_machines": _active(at_location),
        })

    by_provider: dict[str, dict[str, Any]] = {}
    for machine in machines:
        name = providers.get(machine.provider_id) or UNKNOWN
        group = by_provider.setdefault(
            name, {"provider_name": name, "total": 0, "active": 0, "rented": 0, "owned": 0}
        )
        group["total"] += 1
        group["active"] += machine.status == "active"
        group["rented"] += machine.ownership_type == "rent"
        group["owned"] += machine.ownership_type == "property"

    return {
        "total_machines": len(machines),
        "active_machines": _active(machines),
        "rented_machines": sum(1 for machine in machines if machine.ownership_type == "rent"),
        "owned_machines": sum(1 for machine in machines if machine.ownership_type == "property"),
        "by_location": by_location,
        "by_provider": list(by_provider.values()),
    }


def warehouse_machines(db: Session) -> list[SlotMachine]:
    """Machines in storage or not installed anywhere, newest first."""
    query = (
        select(SlotMachine)
        .where(or_(SlotMachine.status == "storage", SlotMachine.location_id.is_(None)))
        .order_by(SlotMachine.created_at.desc(), SlotMachine.id.desc())
    )
    return list(db.scalars(query))


@router.get("/reports/onjn")
def get_onjn_report(
    company_id: Optional[int] = Query(default=None),
    location_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    report = build_onjn_report(db, company_id=company_id, location_id=location_id)
    logger.info(
        "onjn report company_id=%s location_id=%s machines=%s",
        company_id, location_id, report["total_machines"],
    )
    return ok(report, filters={"company_id": company_id, "location_id": location_id})


@router.get("/warehouse")
def get_warehouse(db: Session = Depends(get_db)) -> dict:
    return ok(SLOT_MACHINES.serialize(db, warehouse_machines(db)))
