from datetime import date, datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from cashpot.db import Base

ID_TYPE = BigInteger().with_variant(Integer, "sqlite")
JSON_TYPE = JSON().with_variant(JSONB, "postgresql")
# References between entities are plain ids: deleting a record never cascades
# and orphaned ids are allowed.
REF_TYPE = BigInteger().with_variant(Integer, "sqlite")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )


class Company(TimestampMixin, Base):
    __tablename__ = "company"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    registration_number: Mapped[str | None] = mapped_column(Text)
    tax_id: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    contact_person: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    attachments: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)


class Location(TimestampMixin, Base):
    __tablename__ = "location"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(Text)
    county: Mapped[str | None] = mapped_column(Text)
    country: Mapped[str] = mapped_column(Text, nullable=False, default="Romania")
    postal_code: Mapped[str | None] = mapped_column(Text)
    company_id: Mapped[int | None] = mapped_column(REF_TYPE)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    attachments: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)


class Provider(TimestampMixin, Base):
    __tablename__ = "provider"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    company_name: Mapped[str | None] = mapped_column(Text)
    contact_person: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    avatar: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class Platform(TimestampMixin, Base):
    __tablename__ = "platform"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    provider_id: Mapped[int | None] = mapped_column(REF_TYPE)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class Cabinet(TimestampMixin, Base):
    __tablename__ = "cabinet"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    model: Mapped[str | None] = mapped_column(Text)
    provider_id: Mapped[int | None] = mapped_column(REF_TYPE)
    provider: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(Text)
    game_mix: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    attachments: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)


class GameMix(TimestampMixin, Base):
    __tablename__ = "game_mix"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    provider_id: Mapped[int | None] = mapped_column(REF_TYPE)
    platform_id: Mapped[int | None] = mapped_column(REF_TYPE)
    games: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)
    game_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class SlotMachine(TimestampMixin, Base):
    __tablename__ = "slot_machine"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    serial_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    model: Mapped[str | None] = mapped_column(Text)
    cabinet_id: Mapped[int | None] = mapped_column(REF_TYPE)
    game_mix_id: Mapped[int | None] = mapped_column(REF_TYPE)
    provider_id: Mapped[int | None] = mapped_column(REF_TYPE)
    location_id: Mapped[int | None] = mapped_column(REF_TYPE)
    denomination: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), default=0.01)
    max_bet: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), default=100.0)
    rtp: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), default=96.0)
    gaming_places: Mapped[int] = mapped_column(Integer, default=1)
    commission_date: Mapped[date | None] = mapped_column(Date)
    invoice_number: Mapped[str | None] = mapped_column(Text)
    production_year: Mapped[int | None] = mapped_column(Integer)
    ownership_type: Mapped[str] = mapped_column(String(16), nullable=False, default="property")
    owner_company_id: Mapped[int | None] = mapped_column(REF_TYPE)
    lease_provider_id: Mapped[int | None] = mapped_column(REF_TYPE)
    lease_contract_number: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class Invoice(TimestampMixin, Base):
    __tablename__ = "invoice"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    serial_number: Mapped[str | None] = mapped_column(Text)
    company_id: Mapped[int | None] = mapped_column(REF_TYPE)
    location_ids: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)
    amount: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    issue_date: Mapped[date | None] = mapped_column(Date)
    due_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    description: Mapped[str | None] = mapped_column(Text)
    attachments: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)


class MetrologyCertificate(TimestampMixin, Base):
    __tablename__ = "metrology_certificate"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    serial_number: Mapped[str | None] = mapped_column(Text)
    serial_numbers: Mapped[str | None] = mapped_column(Text)
    serial_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    certificate_number: Mapped[str | None] = mapped_column(Text)
    certificate_type: Mapped[str] = mapped_column(String(32), nullable=False, default="calibration")
    issue_date: Mapped[date | None] = mapped_column(Date)
    expiry_date: Mapped[date | None] = mapped_column(Date)
    cvt_date: Mapped[date | None] = mapped_column(Date)
    issuing_authority: Mapped[str | None] = mapped_column(Text)
    calibration_interval: Mapped[int] = mapped_column(Integer, default=12)
    approval_id: Mapped[int | None] = mapped_column(REF_TYPE)
    authority_id: Mapped[int | None] = mapped_column(REF_TYPE)
    software_id: Mapped[int | None] = mapped_column(REF_TYPE)
    commission_id: Mapped[int | None] = mapped_column(REF_TYPE)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    description: Mapped[str | None] = mapped_column(Text)
    attachments: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)


class MetrologyApproval(TimestampMixin, Base):
    __tablename__ = "metrology_approval"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    issue_date: Mapped[date | None] = mapped_column(Date)
    expiry_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class MetrologyCommission(TimestampMixin, Base):
    __tablename__ = "metrology_commission"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    issue_date: Mapped[date | None] = mapped_column(Date)
    expiry_date: Mapped[date | None] = mapped_column(Date)
    serial_numbers: Mapped[str | None] = mapped_column(Text)
    serial_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class MetrologyAuthority(TimestampMixin, Base):
    __tablename__ = "metrology_authority"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class MetrologySoftware(TimestampMixin, Base):
    __tablename__ = "metrology_software"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    provider_id: Mapped[int | None] = mapped_column(REF_TYPE)
    cabinet_id: Mapped[int | None] = mapped_column(REF_TYPE)
    game_mix_id: Mapped[int | None] = mapped_column(REF_TYPE)
    serial_numbers: Mapped[str | None] = mapped_column(Text)
    serial_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class Jackpot(TimestampMixin, Base):
    __tablename__ = "jackpot"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), default=0)
    jackpot_type: Mapped[str | None] = mapped_column(Text)
    location_id: Mapped[int | None] = mapped_column(REF_TYPE)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")


class LegalDocument(TimestampMixin, Base):
    __tablename__ = "legal_document"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    document_type: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(Text)
    upload_date: Mapped[date | None] = mapped_column(Date)
    expiry_date: Mapped[date | None] = mapped_column(Date)
    company_id: Mapped[int | None] = mapped_column(REF_TYPE)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    attachments: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)


class User(TimestampMixin, Base):
    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str | None] = mapped_column(Text)
    last_name: Mapped[str | None] = mapped_column(Text)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="operator")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    avatar: Mapped[str | None] = mapped_column(Text)
