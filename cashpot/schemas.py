from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FormModel(BaseModel):
    """Base for request bodies coming from the admin forms.

    Forms send ``""`` for untouched inputs and ``"none"`` for an empty select,
    both of which mean "no value".
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any, info) -> Any:
        if isinstance(value, str):
            if value.strip() == "":
                return None
            if info.field_name.endswith("_id") and value == "none":
                return None
        return value


# --- Companies ---


class CompanyCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"name": "Cashpot Gaming SRL", "registration_number": "J40/1234/2020", "tax_id": "RO123456", "status": "active"}})
    name: str
    registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = None
    status: str = "active"
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class CompanyUpdate(FormModel):
    name: Optional[str] = None
    registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = None
    status: Optional[str] = None
    attachments: Optional[list[dict[str, Any]]] = None


# --- Locations ---


class LocationCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"name": "Main Floor", "city": "Bucuresti", "company_id": 1}})
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    country: str = "Romania"
    postal_code: Optional[str] = None
    company_id: Optional[int] = None
    status: str = "active"
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class LocationUpdate(FormModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    company_id: Optional[int] = None
    status: Optional[str] = None
    attachments: Optional[list[dict[str, Any]]] = None


# --- Providers & platforms ---


class ProviderCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"name": "Novomatic", "company_name": "Novomatic AG", "email": "office@novomatic.com"}})
    name: str
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar: Optional[str] = None
    status: str = "active"


class ProviderUpdate(FormModel):
    name: Optional[str] = None
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar: Optional[str] = None
    status: Optional[str] = None


class PlatformCreate(FormModel):
    name: str
    description: Optional[str] = None
    provider_id: Optional[int] = None
    status: str = "active"


class PlatformUpdate(FormModel):
    name: Optional[str] = None
    description: Optional[str] = None
    provider_id: Optional[int] = None
    status: Optional[str] = None


# --- Cabinets ---


class CabinetCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"name": "Alfastreet Live CAB001", "provider": "Alfastreet", "location": "Main Floor", "gameMix": "Classic Slots"}})
    name: str
    model: Optional[str] = None
    provider_id: Optional[int] = None
    provider: Optional[str] = None
    location: Optional[str] = None
    game_mix: Optional[str] = Field(default=None, alias="gameMix")
    status: str = "active"
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class CabinetUpdate(FormModel):
    name: Optional[str] = None
    model: Optional[str] = None
    provider_id: Optional[int] = None
    provider: Optional[str] = None
    location: Optional[str] = None
    game_mix: Optional[str] = Field(default=None, alias="gameMix")
    status: Optional[str] = None
    attachments: Optional[list[dict[str, Any]]] = None


# --- Game mixes ---


class GameMixCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"name": "Classic Slots", "provider_id": 1, "games": "Book of Ra\nSizzling Hot\n"}})
    name: str
    provider_id: Optional[int] = None
    platform_id: Optional[int] = None
    # a newline-delimited string or a list of names; game_count is derived
    games: Optional[str | list[str]] = None
    status: str = "active"


class GameMixUpdate(FormModel):
    name: Optional[str] = None
    provider_id: Optional[int] = None
    platform_id: Optional[int] = None
    games: Optional[str | list[str]] = None
    status: Optional[str] = None


# --- Slot machines ---


class SlotMachineCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"serial_number": "SN-000123", "model": "FV880", "cabinet_id": 1, "game_mix_id": 1, "provider_id": 1, "location_id": 1, "denomination": 0.01, "rtp": 96.0}})
    serial_number: str
    model: Optional[str] = None
    cabinet_id: Optional[int] = None
    game_mix_id: Optional[int] = None
    provider_id: Optional[int] = None
    location_id: Optional[int] = None
    denomination: float = 0.01
    max_bet: float = 100.0
    rtp: float = Field(default=96.0, ge=0, le=100)
    gaming_places: int = 1
    commission_date: Optional[date] = None
    invoice_number: Optional[str] = None
    production_year: Optional[int] = None
    ownership_type: str = Field(default="property", pattern="^(property|rent)$")
    owner_company_id: Optional[int] = None
    lease_provider_id: Optional[int] = None
    lease_contract_number: Optional[str] = None
    status: str = "active"


class SlotMachineUpdate(FormModel):
    serial_number: Optional[str] = None
    model: Optional[str] = None
    cabinet_id: Optional[int] = None
    game_mix_id: Optional[int] = None
    provider_id: Optional[int] = None
    location_id: Optional[int] = None
    denomination: Optional[float] = None
    max_bet: Optional[float] = None
    rtp: Optional[float] = Field(default=None, ge=0, le=100)
    gaming_places: Optional[int] = None
    commission_date: Optional[date] = None
    invoice_number: Optional[str] = None
    production_year: Optional[int] = None
    ownership_type: Optional[str] = Field(default=None, pattern="^(property|rent)$")
    owner_company_id: Optional[int] = None
    lease_provider_id: Optional[int] = None
    lease_contract_number: Optional[str] = None
    status: Optional[str] = None


# --- Invoices ---


class InvoiceCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"invoice_number": "INV-001", "company_id": 1, "location_ids": [1, 2], "amount": 1500, "currency": "EUR"}})
    invoice_number: str
    serial_number: Optional[str] = None
    company_id: Optional[int] = None
    location_ids: list[int] = Field(default_factory=list)
    amount: float = 0
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    status: str = "pending"
    description: Optional[str] = None
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class InvoiceUpdate(FormModel):
    invoice_number: Optional[str] = None
    serial_number: Optional[str] = None
    company_id: Optional[int] = None
    location_ids: Optional[list[int]] = None
    amount: Optional[float] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    status: Optional[str] = None
    description: Optional[str] = None
    attachments: Optional[list[dict[str, Any]]] = None


# --- Metrology ---


class MetrologyCertificateCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"certificate_number": "CVT-2025-001", "serial_numbers": "SN-1\nSN-2", "issue_date": "2025-01-15"}})
    serial_number: Optional[str] = None
    serial_numbers: Optional[str | list[str]] = None
    certificate_number: Optional[str] = None
    certificate_type: str = "calibration"
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    cvt_date: Optional[date] = None
    issuing_authority: Optional[str] = None
    calibration_interval: int = 12
    approval_id: Optional[int] = None
    authority_id: Optional[int] = None
    software_id: Optional[int] = None
    commission_id: Optional[int] = None
    status: str = "active"
    description: Optional[str] = None
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class MetrologyCertificateUpdate(FormModel):
    serial_number: Optional[str] = None
    serial_numbers: Optional[str | list[str]] = None
    certificate_number: Optional[str] = None
    certificate_type: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    cvt_date: Optional[date] = None
    issuing_authority: Optional[str] = None
    calibration_interval: Optional[int] = None
    approval_id: Optional[int] = None
    authority_id: Optional[int] = None
    software_id: Optional[int] = None
    commission_id: Optional[int] = None
    status: Optional[str] = None
    description: Optional[str] = None
    attachments: Optional[list[dict[str, Any]]] = None


class MetrologyApprovalCreate(FormModel):
    name: str
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: str = "active"


class MetrologyApprovalUpdate(FormModel):
    name: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: Optional[str] = None


class MetrologyCommissionCreate(FormModel):
    name: str
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    serial_numbers: Optional[str | list[str]] = None
    status: str = "active"


class MetrologyCommissionUpdate(FormModel):
    name: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    serial_numbers: Optional[str | list[str]] = None
    status: Optional[str] = None


class MetrologyAuthorityCreate(FormModel):
    name: str
    address: Optional[str] = None
    status: str = "active"


class MetrologyAuthorityUpdate(FormModel):
    name: Optional[str] = None
    address: Optional[str] = None
    status: Optional[str] = None


class MetrologySoftwareCreate(FormModel):
    name: str
    provider_id: Optional[int] = None
    cabinet_id: Optional[int] = None
    game_mix_id: Optional[int] = None
    serial_numbers: Optional[str | list[str]] = None
    status: str = "active"


class MetrologySoftwareUpdate(FormModel):
    name: Optional[str] = None
    provider_id: Optional[int] = None
    cabinet_id: Optional[int] = None
    game_mix_id: Optional[int] = None
    serial_numbers: Optional[str | list[str]] = None
    status: Optional[str] = None


# --- Jackpots ---


class JackpotCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"name": "Mega Jackpot", "amount": 50000, "status": "active"}})
    name: str
    amount: float = 0
    jackpot_type: Optional[str] = None
    location_id: Optional[int] = None
    status: str = "active"


class JackpotUpdate(FormModel):
    name: Optional[str] = None
    amount: Optional[float] = None
    jackpot_type: Optional[str] = None
    location_id: Optional[int] = None
    status: Optional[str] = None


# --- Legal documents ---


class LegalDocumentCreate(FormModel):
    model_config = ConfigDict(json_schema_extra={"example": {"name": "Gaming License 2024", "document_type": "license", "category": "regulatory", "expiry_date": "2024-12-31"}})
    name: str
    document_type: Optional[str] = None
    category: Optional[str] = None
    upload_date: Optional[date] = None
    expiry_date: Optional[date] = None
    company_id: Optional[int] = None
    status: str = "active"
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class LegalDocumentUpdate(FormModel):
    name: Optional[str] = None
    document_type: Optional[str] = None
    category: Optional[str] = None
    upload_date: Optional[date] = None
    expiry_date: Optional[date] = None
    company_id: Optional[int] = None
    status: Optional[str] = None
    attachments: Optional[list[dict[str, Any]]] = None


# --- Users & auth ---


class UserCreate(FormModel):
    username: str
    email: str
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "operator"
    is_active: bool = True
    avatar: Optional[str] = None


class UserUpdate(FormModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
    avatar: Optional[str] = None


class LoginRequest(BaseModel):
    model_config = {"json_schema_extra": {"example": {"username": "admin", "password": "password"}}}
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RegisterRequest(FormModel):
    username: str
    email: str
    password: str = Field(min_length=6)
    first_name: str
    last_name: str
    role: str = "user"


# --- Bulk operations ---


class BulkDeleteRequest(BaseModel):
    model_config = {"json_schema_extra": {"example": {"ids": [1, 2]}}}
    ids: list[int] = Field(min_length=1)


class BulkUpdateRequest(BaseModel):
    model_config = {"json_schema_extra": {"example": {"ids": [1, 2], "patch": {"status": "maintenance"}}}}
    ids: list[int] = Field(min_length=1)
    patch: dict[str, Any] = Field(min_length=1)
