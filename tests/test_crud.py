from datetime import date

import pytest
from sqlalchemy.orm import Session

from cashpot.crud import EmptyFields, MissingRecords, Repository, to_dict
from cashpot.models import Cabinet, MetrologyCertificate, User
from cashpot.resources import prepare_certificate, prepare_user
from cashpot.security import verify_password


def test_repository_round_trip(db_session: Session) -> None:
    repo = Repository(db_session, Cabinet)
    cabinet = repo.create({"name": "VIP 27/2x42 CAB002", "location": "VIP Area"})
    assert cabinet.id == 1
    assert cabinet.status == "active"
    assert cabinet.created_at is not None

    repo.update(cabinet, {"status": "maintenance"})
    assert repo.get(cabinet.id).status == "maintenance"
    assert repo.get(cabinet.id).location == "VIP Area"

    repo.delete(cabinet)
    assert repo.get(1) is None


def test_repository_list_filters(db_session: Session) -> None:
    repo = Repository(db_session, Cabinet)
    repo.create({"name": "Alpha", "game_mix": "Classic Slots"})
    repo.create({"name": "Beta", "game_mix": "Premium Games", "status": "inactive"})

    assert [c.name for c in repo.list(sort="-name")] == ["Beta", "Alpha"]
    assert [c.name for c in repo.list(status="inactive")] == ["Beta"]
    assert [c.name for c in repo.list(search="premium", search_fields=("name", "game_mix"))] == ["Beta"]
    with pytest.raises(ValueError):
        repo.list(sort="unknown")


def test_bulk_update_rejects_unknown_ids_without_changes(db_session: Session) -> None:
    repo = Repository(db_session, Cabinet)
    first = repo.create({"name": "A"})
    with pytest.raises(MissingRecords) as excinfo:
        repo.bulk_update([first.id, 50, 51], {"status": "inactive"})
    assert excinfo.value.ids == [50, 51]
    assert repo.get(first.id).status == "active"


def test_bulk_delete_counts_existing_only(db_session: Session) -> None:
    repo = Repository(db_session, Cabinet)
    ids = [repo.create({"name": name}).id for name in ("A", "B", "C")]
    assert repo.bulk_delete([ids[0], ids[2], 77]) == 2
    assert [c.id for c in repo.list()] == [ids[1]]


def test_empty_required_field(db_session: Session) -> None:
    repo = Repository(db_session, Cabinet)
    cabinet = repo.create({"name": "A"})
    with pytest.raises(EmptyFields) as excinfo:
        repo.update(cabinet, {"name": None, "status": None})
    assert excinfo.value.fields == ["name", "status"]


def test_certificate_hook_recomputes_expiry_only_on_issue_change(db_session: Session) -> None:
    repo = Repository(db_session, MetrologyCertificate, prepare=prepare_certificate)
    cert = repo.create({"issue_date": date(2025, 2, 1), "expiry_date": None, "serial_numbers": "X\nY"})
    assert cert.expiry_date == date(2026, 2, 1)
    assert cert.serial_count == 2

    repo.update(cert, {"issue_date": date(2025, 2, 1), "status": "expired"})
    assert cert.expiry_date == date(2026, 2, 1)

    repo.update(cert, {"expiry_date": date(2025, 12, 31)})
    repo.update(cert, {"description": "manual expiry kept"})
    assert cert.expiry_date == date(2025, 12, 31)


def test_user_hook_hashes_password(db_session: Session) -> None:
    repo = Repository(db_session, User, prepare=prepare_user)
    user = repo.create({"username": "floor", "email": "floor@cashpot.com", "password": "operator1"})
    assert verify_password("operator1", user.password_hash)
    assert "password_hash" not in to_dict(user, hidden=("password_hash",))

    old_hash = user.password_hash
    repo.update(user, {"password": None, "first_name": "Operator"})
    assert user.password_hash == old_hash
