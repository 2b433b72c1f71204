from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect, text

from cashpot.config import Settings
from cashpot.main import create_app


def test_create_company_location_slot_machine_flow(client: TestClient) -> None:
    company_resp = client.post("/api/companies", json={"name": "Cashpot Gaming SRL", "tax_id": "RO123"})
    assert company_resp.status_code == 201
    company_id = company_resp.json()["data"]["id"]

    location_resp = client.post(
        "/api/locations",
        json={"name": "Main Floor", "city": "Bucuresti", "company_id": company_id},
    )
    assert location_resp.status_code == 201
    location = location_resp.json()["data"]
    assert location["company_id"] == company_id
    assert location["country"] == "Romania"

    provider_id = client.post("/api/providers", json={"name": "Novomatic"}).json()["data"]["id"]

    slot_resp = client.post(
        "/api/slot-machines",
        json={
            "serial_number": "SN-0001",
            "model": "FV880",
            "provider_id": provider_id,
            "location_id": location["id"],
            "cabinet_id": 999,
            "game_mix_id": "none",
            "commission_date": "",
        },
    )
    assert slot_resp.status_code == 201
    slot = slot_resp.json()["data"]
    assert slot["id"] > 0
    assert slot["denomination"] == 0.01
    assert slot["ownership_type"] == "property"
    assert slot["game_mix_id"] is None
    assert slot["commission_date"] is None
    assert slot["provider_name"] == "Novomatic"
    assert slot["location_name"] == "Main Floor"
    # orphaned and missing references
    assert slot["cabinet_name"] == "Unknown"
    assert slot["game_mix_name"] == "Unknown"


def test_crud_round_trip(client: TestClient) -> None:
    created = client.post("/api/jackpots", json={"name": "Mega Jackpot", "amount": 50000}).json()["data"]
    jackpot_id = created["id"]

    fetched = client.get(f"/api/jackpots/{jackpot_id}").json()["data"]
    assert fetched["name"] == "Mega Jackpot"
    assert fetched["amount"] == 50000
    assert fetched["status"] == "active"

    updated = client.put(f"/api/jackpots/{jackpot_id}", json={"amount": 51000}).json()["data"]
    assert updated["amount"] == 51000
    assert updated["name"] == "Mega Jackpot"

    delete_resp = client.delete(f"/api/jackpots/{jackpot_id}")
    assert delete_resp.status_code == 200
    assert delete_resp.json()["data"]["success"] is True

    missing = client.get(f"/api/jackpots/{jackpot_id}")
    assert missing.status_code == 404
    assert missing.json()["error"]["message"] == "jackpot not found"
    assert missing.json()["data"] is None


def test_envelope_on_list(client: TestClient) -> None:
    client.post("/api/providers", json={"name": "EGT"})
    body = client.get("/api/providers").json()
    assert set(body) == {"data", "meta"}
    assert body["meta"]["request_id"].startswith("req_")
    assert body["meta"]["warnings"] == []
    assert [provider["name"] for provider in body["data"]] == ["EGT"]


def test_list_sort_status_and_search(client: TestClient) -> None:
    for name, status in [("Beta", "active"), ("Alpha", "inactive"), ("Gamma", "active")]:
        client.post("/api/companies", json={"name": name, "status": status})

    names = [row["name"] for row in client.get("/api/companies", params={"sort": "name"}).json()["data"]]
    assert names == ["Alpha", "Beta", "Gamma"]

    names = [row["name"] for row in client.get("/api/companies", params={"sort": "-name"}).json()["data"]]
    assert names == ["Gamma", "Beta", "Alpha"]

    active = client.get("/api/companies", params={"status": "active"}).json()["data"]
    assert {row["name"] for row in active} == {"Beta", "Gamma"}

    found = client.get("/api/companies", params={"search": "GAM"}).json()["data"]
    assert [row["name"] for row in found] == ["Gamma"]

    bad_sort = client.get("/api/companies", params={"sort": "nope"})
    assert bad_sort.status_code == 400


def test_create_cabinet_defaults_status_and_assigns_sequential_ids(client: TestClient) -> None:
    payload = {"name": "A", "provider": "P", "location": "L", "gameMix": "G"}
    first = client.post("/api/cabinets", json=payload)
    assert first.status_code == 201
    data = first.json()["data"]
    assert data["id"] == 1
    assert data["status"] == "active"
    assert data["game_mix"] == "G"

    second = client.post("/api/cabinets", json={**payload, "name": "B"})
    assert second.json()["data"]["id"] == 2


def test_create_cabinet_without_name_is_rejected(client: TestClient) -> None:
    resp = client.post("/api/cabinets", json={"provider": "P"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["message"] == "Validation failed"
    assert body["error"]["details"][0]["loc"][-1] == "name"

    blank = client.post("/api/cabinets", json={"name": "  "})
    assert blank.status_code == 400


def test_cabinet_bulk_delete_removes_exactly_given_ids(client: TestClient) -> None:
    for name in ("A", "B", "C"):
        client.post("/api/cabinets", json={"name": name})

    resp = client.post("/api/cabinets/bulk-delete", json={"ids": [1, 2]})
    assert resp.status_code == 200
    assert resp.json()["data"]["deleted"] == 2

    remaining = client.get("/api/cabinets").json()["data"]
    assert [cabinet["id"] for cabinet in remaining] == [3]


def test_bulk_delete_requires_ids(client: TestClient) -> None:
    assert client.post("/api/cabinets/bulk-delete", json={"ids": []}).status_code == 400
    assert client.post("/api/cabinets/bulk-delete", json={}).status_code == 400


def test_cabinet_search_filter_and_pagination(client: TestClient) -> None:
    for index in range(12):
        client.post(
            "/api/cabinets",
            json={
                "name": f"Cabinet {index:02d}",
                "provider": "Alfastreet" if index % 2 else "Novomatic",
                "location": "VIP Area" if index < 3 else "Main Floor",
                "status": "maintenance" if index == 5 else "active",
            },
        )

    first_page = client.get("/api/cabinets", params={"page": 1}).json()
    assert len(first_page["data"]) == 10
    assert first_page["meta"]["pagination"] == {
        "current_page": 1,
        "total_pages": 2,
        "total_items": 12,
        "items_per_page": 10,
    }
    second_page = client.get("/api/cabinets", params={"page": 2}).json()
    assert [row["name"] for row in second_page["data"]] == ["Cabinet 10", "Cabinet 11"]

    vip = client.get("/api/cabinets", params={"search": "vip"}).json()["data"]
    assert len(vip) == 3

    maintenance = client.get("/api/cabinets", params={"status": "maintenance"}).json()["data"]
    assert [row["name"] for row in maintenance] == ["Cabinet 05"]

    alfastreet = client.get("/api/cabinets", params={"provider": "alfa", "limit": 3}).json()
    assert len(alfastreet["data"]) == 3
    assert alfastreet["meta"]["pagination"]["total_items"] == 6


def test_update_only_changes_submitted_fields(client: TestClient) -> None:
    cabinet = client.post(
        "/api/cabinets", json={"name": "A", "model": "P42V", "location": "VIP"}
    ).json()["data"]

    resp = client.patch(f"/api/cabinets/{cabinet['id']}", json={"status": "maintenance"})
    data = resp.json()["data"]
    assert data["status"] == "maintenance"
    assert data["model"] == "P42V"
    assert data["location"] == "VIP"


def test_update_cannot_blank_required_field(client: TestClient) -> None:
    cabinet = client.post("/api/cabinets", json={"name": "A"}).json()["data"]
    resp = client.put(f"/api/cabinets/{cabinet['id']}", json={"name": ""})
    assert resp.status_code == 400
    assert "name" in resp.json()["error"]["message"]


def test_update_missing_record_is_404(client: TestClient) -> None:
    resp = client.put("/api/providers/42", json={"name": "X"})
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "provider not found"


def test_bulk_update_is_atomic(client: TestClient) -> None:
    ids = [client.post("/api/locations", json={"name": f"L{i}"}).json()["data"]["id"] for i in range(3)]

    resp = client.post("/api/locations/bulk-update", json={"ids": ids, "patch": {"city": "Cluj"}})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["updated"] == 3
    assert {row["city"] for row in data["records"]} == {"Cluj"}

    failed = client.post(
        "/api/locations/bulk-update", json={"ids": [ids[0], 999], "patch": {"city": "Iasi"}}
    )
    assert failed.status_code == 404
    assert client.get(f"/api/locations/{ids[0]}").json()["data"]["city"] == "Cluj"


def test_bulk_update_validates_patch(client: TestClient) -> None:
    slot_id = client.post("/api/slot-machines", json={"serial_number": "SN-1"}).json()["data"]["id"]
    resp = client.post(
        "/api/slot-machines/bulk-update", json={"ids": [slot_id], "patch": {"rtp": 150}}
    )
    assert resp.status_code == 400

    unknown = client.post(
        "/api/slot-machines/bulk-update", json={"ids": [slot_id], "patch": {"colour": "red"}}
    )
    assert unknown.status_code == 400


def test_duplicate_serial_number_is_conflict(client: TestClient) -> None:
    assert client.post("/api/slot-machines", json={"serial_number": "SN-9"}).status_code == 201
    resp = client.post("/api/slot-machines", json={"serial_number": "SN-9"})
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "slot machine already exists"


def test_game_mix_count_is_derived_from_games(client: TestClient) -> None:
    resp = client.post(
        "/api/game-mixes",
        json={"name": "Classic Slots", "games": "Book of Ra\n  \n Sizzling Hot \n\n", "game_count": 99},
    )
    data = resp.json()["data"]
    assert data["games"] == ["Book of Ra", "Sizzling Hot"]
    assert data["game_count"] == 2

    updated = client.put(
        f"/api/game-mixes/{data['id']}", json={"games": ["Dolphin's Pearl", "", "Lucky Lady"]}
    ).json()["data"]
    assert updated["game_count"] == 2

    renamed = client.put(f"/api/game-mixes/{data['id']}", json={"name": "Classics"}).json()["data"]
    assert renamed["game_count"] == 2


def test_certificate_expiry_is_derived_and_editable(client: TestClient) -> None:
    cert = client.post(
        "/api/metrology",
        json={"certificate_number": "CVT-1", "issue_date": "2024-01-15", "serial_numbers": "A1\nA2\n"},
    ).json()["data"]
    # 2024 is a leap year: 365 days later is not the same calendar date
    assert cert["expiry_date"] == "2025-01-14"
    assert cert["serial_count"] == 2

    edited = client.put(f"/api/metrology/{cert['id']}", json={"expiry_date": "2025-06-30"}).json()["data"]
    assert edited["expiry_date"] == "2025-06-30"

    reissued = client.put(f"/api/metrology/{cert['id']}", json={"issue_date": "2025-01-10"}).json()["data"]
    assert reissued["expiry_date"] == "2026-01-10"

    explicit = client.post(
        "/api/metrology", json={"issue_date": "2025-01-01", "expiry_date": "2025-12-01"}
    ).json()["data"]
    assert explicit["expiry_date"] == "2025-12-01"

    # full-record save with a new issue date carries the old expiry along
    resaved = client.put(
        f"/api/metrology/{explicit['id']}", json={**explicit, "issue_date": "2025-06-01"}
    ).json()["data"]
    assert resaved["expiry_date"] == "2026-06-01"

    both_changed = client.put(
        f"/api/metrology/{explicit['id']}",
        json={**resaved, "issue_date": "2025-07-01", "expiry_date": "2026-03-31"},
    ).json()["data"]
    assert both_changed["expiry_date"] == "2026-03-31"


def test_commission_serial_count(client: TestClient) -> None:
    data = client.post(
        "/api/metrology-commissions", json={"name": "Comisia 1", "serial_numbers": " S1 \n\nS2\nS3"}
    ).json()["data"]
    assert data["serial_count"] == 3
    assert data["serial_numbers"] == "S1\nS2\nS3"


def test_invoice_with_locations(client: TestClient) -> None:
    resp = client.post(
        "/api/invoices",
        json={"invoice_number": "INV-001", "location_ids": [1, 2], "amount": 1500, "issue_date": "2025-09-01"},
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["location_ids"] == [1, 2]
    assert data["currency"] == "EUR"
    assert data["status"] == "pending"
    assert data["issue_date"] == "2025-09-01"


def test_users_resource_hides_password(client: TestClient) -> None:
    resp = client.post(
        "/api/users", json={"username": "operator", "email": "op@cashpot.com", "password": "secret1"}
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert "password" not in data
    assert "password_hash" not in data
    assert data["role"] == "operator"


def test_health_endpoints(client: TestClient) -> None:
    for path in ("/health", "/api/health"):
        body = client.get(path).json()
        assert body["status"] == "ok"
        assert body["version"] == "7.0.1"
        assert body["database"] == "ok"
        assert body["uptime"] >= 0
        assert "timestamp" in body


def test_stats_counts(client: TestClient) -> None:
    client.post("/api/slot-machines", json={"serial_number": "A", "ownership_type": "rent"})
    client.post("/api/slot-machines", json={"serial_number": "B", "status": "storage"})
    stats = client.get("/api/stats").json()["data"]
    assert stats["slot-machines"]["total"] == 2
    assert stats["slot-machines"]["by_status"] == {"active": 1, "storage": 1}
    assert stats["slot-machines"]["by_ownership"] == {"rent": 1, "property": 1}
    assert stats["companies"]["total"] == 0


def test_unknown_route(client: TestClient) -> None:
    resp = client.get("/api/warehouses")
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Route not found"


def test_app_writes_to_configured_database(tmp_path) -> None:
    db_file = tmp_path / "fleet.db"
    app_settings = Settings(
        environment="development",
        database_url=f"sqlite:///{db_file}",
        jwt_secret="test-secret-key-with-enough-length-0123",
    )
    with TestClient(create_app(app_settings)) as client:
        assert client.post("/api/companies", json={"name": "Cashpot Gaming SRL"}).status_code == 201
        assert client.get("/health").json()["database"] == "ok"

    engine = create_engine(f"sqlite:///{db_file}")
    try:
        assert "company" in inspect(engine).get_table_names()
        with engine.connect() as conn:
            names = conn.execute(text("SELECT name FROM company")).scalars().all()
    finally:
        engine.dispose()
    assert names == ["Cashpot Gaming SRL"]


def test_legal_documents_resource(client: TestClient) -> None:
    resp = client.post(
        "/api/legal-documents",
        json={"name": "Gaming License 2024", "document_type": "license", "category": "regulatory",
              "upload_date": "2024-01-15", "expiry_date": "2024-12-31"},
    )
    assert resp.status_code == 201
    doc = resp.json()["data"]
    assert doc["status"] == "active"
    assert doc["expiry_date"] == "2024-12-31"

    client.post("/api/legal-documents", json={"name": "Insurance Policy", "document_type": "insurance",
                                              "status": "expiring"})
    found = client.get("/api/legal-documents", params={"search": "LICENSE"}).json()["data"]
    assert [row["name"] for row in found] == ["Gaming License 2024"]
    expiring = client.get("/api/legal-documents", params={"status": "expiring"}).json()["data"]
    assert [row["name"] for row in expiring] == ["Insurance Policy"]
