"""Role resolution: derivation, persistence, stability and the concurrent first-login race."""
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine, select

from conftest import ConfirmingIdentity, unique_email
from oralscan.core.config import settings
from oralscan.core.database import engine
from oralscan.core.errors import IdentityUnavailable, PersistenceError
from oralscan.models import Role, UserProfile
from oralscan.schemas import Principal
from oralscan.services import roles
from oralscan.services.identity import LocalIdentityProvider


def _principal(email: str) -> Principal:
    return Principal(id=uuid.uuid4().hex, email=email)


@pytest.mark.parametrize(
    "email,expected",
    [
        ("technician1@clinic.com", Role.CAPTURE),
        ("Lab.TECHNICIAN@clinic.com", Role.CAPTURE),
        ("dr.smith@clinic.com", Role.REVIEW),
        ("", Role.REVIEW),
    ],
)
def test_derive_default_role(email, expected):
    assert roles.derive_default_role(email) == expected


def test_derive_default_role_custom_marker():
    assert roles.derive_default_role("scanner@clinic.com", marker="Scanner") == Role.CAPTURE
    assert roles.derive_default_role("technician@clinic.com", marker="scanner") == Role.REVIEW


def test_first_resolution_stores_profile(db: Session):
    p = _principal(unique_email("technician"))
    assert roles.resolve_role(db, p, ConfirmingIdentity()) == Role.CAPTURE
    profile = db.get(UserProfile, p.id)
    assert profile is not None
    assert profile.role == "capture"
    assert profile.email == p.email
    assert profile.full_name == p.email.split("@")[0]


def test_stored_role_wins_over_changed_rule(db: Session, monkeypatch):
    p = _principal(unique_email("technician"))
    assert roles.resolve_role(db, p, ConfirmingIdentity()) == Role.CAPTURE
    monkeypatch.setattr(settings, "capture_email_marker", "nobody-matches-this")
    assert roles.derive_default_role(p.email) == Role.REVIEW
    assert roles.resolve_role(db, p, ConfirmingIdentity()) == Role.CAPTURE


def test_unconfirmed_principal_is_rejected(db: Session):
    p = _principal(unique_email("dr"))
    with pytest.raises(IdentityUnavailable):
        roles.resolve_role(db, p, ConfirmingIdentity(confirmed=False))
    assert db.get(UserProfile, p.id) is None


def test_concurrent_first_login_keeps_first_stored_role(db: Session, monkeypatch):
    """Two first logins race: the loser must return the winner's stored role, not its own."""
    p = _principal(unique_email("technician"))
    real_stored_role = roles._stored_role
    calls = {"n": 0}

    def stale_read(session, principal_id):
        calls["n"] += 1
        if calls["n"] == 1:
            # The competing login commits between our read and our insert
            with Session(engine) as other:
                other.add(UserProfile(id=principal_id, email=p.email, role=Role.REVIEW.value))
                other.commit()
            return None
        return real_stored_role(session, principal_id)

    monkeypatch.setattr(roles, "_stored_role", stale_read)
    assert roles.resolve_role(db, p, ConfirmingIdentity()) == Role.REVIEW
    rows = db.exec(select(UserProfile).where(UserProfile.id == p.id)).all()
    assert len(rows) == 1


def test_storage_failure_is_persistence_error(db: Session, monkeypatch):
    p = _principal(unique_email("dr"))

    def broken_commit():
        raise OperationalError("INSERT INTO user_profiles", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(PersistenceError):
        roles.resolve_role(db, p, ConfirmingIdentity())


def test_local_identity_confirms_registered_account(db: Session):
    identity = LocalIdentityProvider(db)
    p = identity.register(unique_email("dr"), "secret123", "Dr Who")
    assert identity.confirm(p)
    assert not identity.confirm(Principal(id=p.id, email="someone-else@clinic.example.com"))
    assert roles.resolve_role(db, p, identity) == Role.REVIEW


def test_token_round_trip_and_rejection(db: Session):
    identity = LocalIdentityProvider(db)
    p = identity.register(unique_email("technician"), "secret123")
    assert identity.principal_from_token(identity.issue_token(p)) == p
    with pytest.raises(IdentityUnavailable):
        identity.principal_from_token("garbage")


def test_threaded_first_logins_store_one_role(tmp_path, monkeypatch):
    """Two sessions on a file database both miss the stored role, then race to insert it."""
    race_engine = create_engine(
        f"sqlite:///{tmp_path / 'roles.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(race_engine)
    p = _principal(unique_email("technician"))

    both_missed = threading.Barrier(2, timeout=10)
    first_read = threading.local()
    real_stored_role = roles._stored_role

    def read_then_wait(session, principal_id):
        role = real_stored_role(session, principal_id)
        if not getattr(first_read, "done", False):
            first_read.done = True
            both_missed.wait()
        return role

    # Each thread derives a different role so the loser's own guess is detectable
    wanted = {"capture": Role.CAPTURE, "review": Role.REVIEW}

    def derive_for_thread(email, marker=None):
        return wanted[threading.current_thread().name.split("_")[0]]

    monkeypatch.setattr(roles, "_stored_role", read_then_wait)
    monkeypatch.setattr(roles, "derive_default_role", derive_for_thread)

    def login(name):
        threading.current_thread().name = f"{name}_login"
        with Session(race_engine) as session:
            return roles.resolve_role(session, p, ConfirmingIdentity())

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(login, ["capture", "review"]))

    with Session(race_engine) as session:
        rows = session.exec(select(UserProfile).where(UserProfile.id == p.id)).all()
    assert len(rows) == 1
    assert results[0] == results[1] == Role(rows[0].role)
    race_engine.dispose()


def test_profile_timestamp_is_timezone_aware(db: Session):
    p = _principal(unique_email("dr"))
    roles.resolve_role(db, p, ConfirmingIdentity())
    db.expire_all()
    profile = db.get(UserProfile, p.id)
    assert profile.created_at.tzinfo is not None
    assert profile.created_at.utcoffset().total_seconds() == 0
