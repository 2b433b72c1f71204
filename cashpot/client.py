"""Async entity façade over the Cashpot REST API.

Every resource is exposed as an :class:`EntityClient` with the same
``list/get/create/update/delete`` contract. Callers own re-fetching after a
mutation.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

import httpx

from cashpot.config import settings
from cashpot.derive import build_patch

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class ApiError(Exception):
    def __init__(self, status: int, message: str, details: Any = None):
        self.status = status
        self.message = message
        self.details = details
        super().__init__(f"{status}: {message}")


class ValidationError(ApiError):
    pass


class AuthError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    pass


_ERRORS = {400: ValidationError, 401: AuthError, 404: NotFoundError, 409: ConflictError}


class BulkOperationError(Exception):
    """Some calls of a fan-out failed; nothing was rolled back."""

    def __init__(self, failures: dict[int, Exception], succeeded: list[Any]):
        self.failures = failures
        self.succeeded = succeeded
        super().__init__(f"{len(failures)} of {len(failures) + len(succeeded)} operations failed")


def _raise_for_response(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = (body.get("error") if isinstance(body, dict) else None) or {}
    message = error.get("message") or response.reason_phrase
    cls = _ERRORS.get(response.status_code, ApiError)
    raise cls(response.status_code, message, error.get("details"))


class EntityClient:
    def __init__(self, api: CashpotClient, path: str):
        self.api = api
        self.path = path

    async def list(self, sort: Optional[str] = None, **filters: Any) -> list[dict]:
        params = {key: value for key, value in filters.items() if value is not None}
        if sort:
            params["sort"] = sort
        return await self.api.request("GET", f"/{self.path}", params=params)

    async def get(self, record_id: int) -> dict:
        return await self.api.request("GET", f"/{self.path}/{record_id}")

    async def create(self, data: Mapping[str, Any]) -> dict:
        return await self.api.request("POST", f"/{self.path}", json=dict(data))

    async def update(self, record_id: int, data: Mapping[str, Any]) -> dict:
        return await self.api.request("PUT", f"/{self.path}/{record_id}", json=dict(data))

    async def delete(self, record_id: int) -> dict:
        return await self.api.request("DELETE", f"/{self.path}/{record_id}")

    async def _fan_out(
        self,
        ids: Iterable[int],
        call: Callable[[int], Awaitable[Any]],
        concurrency: Optional[int],
    ) -> list[Any]:
        ids = list(ids)
        semaphore = asyncio.Semaphore(concurrency) if concurrency else None

        async def run(record_id: int) -> Any:
            if semaphore is None:
                return await call(record_id)
            async with semaphore:
                return await call(record_id)

        results = await asyncio.gather(*(run(record_id) for record_id in ids), return_exceptions=True)
        failures = {
            record_id: result
            for record_id, result in zip(ids, results)
            if isinstance(result, Exception)
        }
        succeeded = [result for result in results if not isinstance(result, BaseException)]
        if failures:
            logger.warning("bulk %s: %d failed of %d", self.path, len(failures), len(ids))
            raise BulkOperationError(failures, succeeded)
        return succeeded

    async def bulk_update(
        self,
        ids: Iterable[int],
        form: Mapping[str, Any],
        touched: Optional[Iterable[str]] = None,
        concurrency: Optional[int] = None,
    ) -> list[dict]:
        """Apply the sparse patch built from ``form`` to every id.

        One update request per id, issued concurrently.
        """
        patch = build_patch(form, touched)
        if not patch:
            return []
        return await self._fan_out(ids, lambda record_id: self.update(record_id, patch), concurrency)

    async def bulk_delete(self, ids: Iterable[int], concurrency: Optional[int] = None) -> int:
        results = await self._fan_out(ids, self.delete, concurrency)
        return len(results)

    async def bulk_update_atomic(self, ids: Iterable[int], patch: Mapping[str, Any]) -> dict:
        return await self.api.request(
            "POST", f"/{self.path}/bulk-update", json={"ids": list(ids), "patch": dict(patch)}
        )

    async def bulk_delete_atomic(self, ids: Iterable[int]) -> int:
        data = await self.api.request("POST", f"/{self.path}/bulk-delete", json={"ids": list(ids)})
        return data["deleted"]


class CashpotClient:
    ENTITIES = {
        "companies": "companies",
        "locations": "locations",
        "providers": "providers",
        "platforms": "platforms",
        "cabinets": "cabinets",
        "game_mixes": "game-mixes",
        "slot_machines": "slot-machines",
        "invoices": "invoices",
        "metrology": "metrology",
        "metrology_approvals": "metrology-approvals",
        "metrology_commissions": "metrology-commissions",
        "metrology_authorities": "metrology-authorities",
        "metrology_software": "metrology-software",
        "jackpots": "jackpots",
        "legal_documents": "legal-documents",
        "users": "users",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.token = token
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.api_url, transport=transport, timeout=timeout
        )
        for attr, path in self.ENTITIES.items():
            setattr(self, attr, EntityClient(self, path))

    async def __aenter__(self) -> CashpotClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._http.request(method, path, headers=self._headers(), **kwargs)
        _raise_for_response(response)
        body = response.json()
        return body["data"] if isinstance(body, dict) and "data" in body else body

    async def health(self) -> dict:
        return await self.request("GET", "/health")

    async def stats(self) -> dict:
        return await self.request("GET", "/stats")

    async def onjn_report(self, company_id: Optional[int] = None, location_id: Optional[int] = None) -> dict:
        params = {"company_id": company_id, "location_id": location_id}
        return await self.request(
            "GET", "/reports/onjn", params={key: value for key, value in params.items() if value is not None}
        )

    async def warehouse(self) -> list[dict]:
        return await self.request("GET", "/warehouse")

    async def login(self, username: str, password: str) -> dict:
        data = await self.request("POST", "/auth/login", json={"username": username, "password": password})
        self.token = data["token"]
        return data["user"]

    async def register(self, **fields: Any) -> dict:
        data = await self.request("POST", "/auth/register", json=fields)
        self.token = data["token"]
        return data["user"]

    async def verify(self) -> dict:
        data = await self.request("GET", "/auth/verify")
        return data["user"]

    async def logout(self) -> None:
        await self.request("POST", "/auth/logout")
        self.token = None


# --- list page helpers ---


def filter_records(
    records: Iterable[Mapping[str, Any]],
    search: Optional[str] = None,
    fields: Iterable[str] = (),
    **equals: Any,
) -> list[Mapping[str, Any]]:
    """Case-insensitive substring search over ``fields`` plus exact filters.

    Filters set to ``None``, ``""`` or ``"all"`` are ignored, like an unset
    dropdown.
    """
    term = (search or "").strip().lower()
    fields = list(fields)
    active = {key: value for key, value in equals.items() if value not in (None, "", "all")}
    result = []
    for record in records:
        if term and not any(term in str(record.get(field) or "").lower() for field in fields):
            continue
        if any(record.get(key) != value for key, value in active.items()):
            continue
        result.append(record)
    return result


def count_by(records: Iterable[Mapping[str, Any]], field: str) -> dict[Any, int]:
    return dict(Counter(record.get(field) for record in records))


def resolve_name(records: Iterable[Mapping[str, Any]], record_id: Any, field: str = "name") -> str:
    if record_id is None:
        return UNKNOWN
    for record in records:
        if record.get("id") == record_id:
            return record.get(field) or UNKNOWN
    return UNKNOWN
