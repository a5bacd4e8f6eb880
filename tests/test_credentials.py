"""Tests for the credential store."""

import pytest
from sqlalchemy import select

from auth import credentials, sessions
from conftest import ADMIN_PASSWORD, PASSWORD
from core.exceptions import BadRequest, Conflict
from models.activity_log import ActivityLog
from models.user import User


# --- Lookup & verification ---

def test_find_by_username_or_email(make_user, db):
    alice = make_user("alice")
    assert credentials.find_by_username_or_email(db, "alice").id == alice.id
    assert credentials.find_by_username_or_email(db, "alice@example.com").id == alice.id
    assert credentials.find_by_username_or_email(db, " alice ").id == alice.id
    assert credentials.find_by_username_or_email(db, "bob") is None
    assert credentials.find_by_username_or_email(db, "") is None


def test_passwords_are_hashed_for_every_role(make_user, admin):
    alice = make_user("alice")
    for user, plain in ((alice, PASSWORD), (admin, ADMIN_PASSWORD)):
        assert user.password_hash.startswith("$pbkdf2-sha256$")
        assert plain not in user.password_hash


def test_verify(make_user, admin):
    alice = make_user("alice")
    assert credentials.verify(alice, PASSWORD)
    assert not credentials.verify(alice, "wrong")
    assert credentials.verify(admin, ADMIN_PASSWORD)
    assert not credentials.verify(admin, PASSWORD)
    assert not credentials.verify(None, PASSWORD)
    assert not credentials.verify(alice, None)


def test_only_non_admins_keep_an_encrypted_copy(make_user, admin):
    alice = make_user("alice")
    assert alice.password_secret and PASSWORD not in alice.password_secret
    assert credentials.reveal_password(alice) == PASSWORD
    assert admin.password_secret is None
    assert credentials.reveal_password(admin) is None


# --- Creation ---

def test_create_user_rejects_duplicates_and_bad_roles(make_user, db):
    make_user("alice")
    with pytest.raises(Conflict):
        credentials.create_user(db, "alice", "other@example.com", PASSWORD)
    with pytest.raises(Conflict):
        credentials.create_user(db, "other", "alice@example.com", PASSWORD)
    with pytest.raises(BadRequest):
        credentials.create_user(db, "carol", "carol@example.com", PASSWORD, role="root")


def test_create_user_insert_race_is_a_conflict(db):
    # a row the lookup cannot see yet, as when another request inserts the
    # same name between our check and our flush
    db.add(User(username="alice", email="alice@example.com", password_hash="x", role="user"))

    with pytest.raises(Conflict):
        credentials.create_user(db, "alice", "alice@example.com", PASSWORD)

    assert db.scalars(select(User)).all() == []


def test_create_user_by_admin_is_logged(admin, db):
    user = credentials.create_user(db, "dave", "dave@example.com", PASSWORD, acting_admin=admin, ip="10.0.0.1")
    db.commit()
    assert user.force_password_change is True
    entry = db.scalars(select(ActivityLog).where(ActivityLog.action == "create_user")).one()
    assert entry.user_id == admin.id
    assert "dave" in entry.details


# --- Reset ---

def test_reset_credential_forces_change_for_users(make_user, admin, db):
    alice = make_user("alice")
    sessions.issue(db, alice)
    db.commit()

    credentials.reset_credential(db, alice, "NewSecret1", admin)
    db.commit()
    db.refresh(alice)

    assert alice.force_password_change is True
    assert credentials.verify(alice, "NewSecret1")
    assert not credentials.verify(alice, PASSWORD)
    assert credentials.reveal_password(alice) == "NewSecret1"
    assert sessions.destroy_for_user(db, alice.id) == 0  # already dropped
    actions = db.scalars(select(ActivityLog.action)).all()
    assert "reset_password" in actions


def test_reset_credential_of_admin_does_not_force_change(make_user, admin, db):
    other_admin = make_user("ops", role="admin")
    credentials.reset_credential(db, other_admin, "NewSecret1", admin)
    db.commit()
    db.refresh(other_admin)
    assert other_admin.force_password_change is False
    assert other_admin.password_secret is None


# --- Self-service change ---

def test_change_password_clears_flag(make_user, db):
    alice = make_user("alice", force_password_change=True)
    credentials.change_password(db, alice, PASSWORD, "Better123")
    db.commit()
    assert alice.force_password_change is False
    assert credentials.verify(alice, "Better123")


@pytest.mark.parametrize("old,new", [
    ("wrong", "Better123"),
    (PASSWORD, "short1A"),
    (PASSWORD, "alllowercase1"),
    (PASSWORD, "ALLUPPERCASE1"),
    (PASSWORD, "NoDigitsHere"),
])
def test_change_password_rejections(make_user, db, old, new):
    alice = make_user("alice")
    with pytest.raises(BadRequest):
        credentials.change_password(db, alice, old, new)


# --- Roles ---

def test_change_role(make_user, admin, db):
    alice = make_user("alice")
    credentials.change_role(db, alice, "admin", admin)
    db.commit()
    assert alice.role == "admin"
    assert alice.password_secret is None

    with pytest.raises(BadRequest):
        credentials.change_role(db, admin, "user", admin)
    with pytest.raises(BadRequest):
        credentials.change_role(db, alice, "owner", admin)


# --- Telemetry ---

def test_record_successful_login_increments_atomically(make_user, db):
    alice = make_user("alice")
    assert alice.login_count == 0

    credentials.record_successful_login(db, alice, "8.8.8.8", "Beijing")
    credentials.record_successful_login(db, alice, "8.8.4.4", "Shanghai")
    db.commit()

    assert alice.login_count == 2
    assert alice.last_login_ip == "8.8.4.4"
    assert alice.last_login_location == "Shanghai"
    assert alice.last_login is not None
    assert alice.is_online is True

    credentials.mark_offline(db, alice.id)
    db.commit()
    db.refresh(alice)
    assert alice.is_online is False


# --- Enable / disable ---

def test_disable_drops_sessions_and_enable_restores(make_user, admin, db):
    alice = make_user("alice")
    sessions.issue(db, alice)
    db.commit()

    credentials.set_active(db, alice, False, admin, ip="10.0.0.1")
    db.commit()
    db.refresh(alice)
    assert alice.is_active is False
    assert sessions.destroy_for_user(db, alice.id) == 0

    credentials.set_active(db, alice, True, admin)
    db.commit()
    db.refresh(alice)
    assert alice.is_active is True

    actions = db.scalars(select(ActivityLog.action).order_by(ActivityLog.id)).all()
    assert actions == ["disable_user", "enable_user"]


def test_admin_cannot_disable_self(admin, db):
    with pytest.raises(BadRequest):
        credentials.set_active(db, admin, False, admin)
    assert admin.is_active is True
