"""Tests for the server-side session store and the auth guards."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from auth import sessions
from core.exceptions import Forbidden, Unauthorized
from core.config import settings
from core.security import get_client_ip, require_admin, require_auth
from models.session import UserSession


def test_issue_and_resolve(make_user, db):
    alice = make_user("alice")
    row = sessions.issue(db, alice, "10.0.0.8", "pytest")
    db.commit()

    found = sessions.resolve(db, row.id)
    assert found is not None
    assert (found.user_id, found.username, found.role) == (alice.id, "alice", "user")
    ttl = sessions._as_utc(found.expires_at) - sessions._as_utc(found.created_at)
    assert ttl == timedelta(hours=24)


def test_session_ids_are_unique_and_opaque(make_user, db):
    alice = make_user("alice")
    a = sessions.issue(db, alice)
    b = sessions.issue(db, alice)
    assert a.id != b.id
    assert str(alice.id) not in (a.id, b.id)
    assert len(a.id) >= 40


def test_expired_session_is_gone(make_user, db):
    alice = make_user("alice")
    row = sessions.issue(db, alice)
    row.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    db.commit()
    session_id = row.id

    assert sessions.resolve(db, session_id) is None
    assert db.get(UserSession, session_id) is None


def test_destroy_is_idempotent(make_user, db):
    alice = make_user("alice")
    row = sessions.issue(db, alice)
    db.commit()
    session_id = row.id

    assert sessions.destroy(db, session_id) is not None
    db.commit()
    assert sessions.destroy(db, session_id) is None
    assert sessions.destroy(db, None) is None
    assert sessions.resolve(db, session_id) is None


def test_purge_expired_keeps_live_sessions(make_user, db):
    alice = make_user("alice")
    live = sessions.issue(db, alice)
    stale = sessions.issue(db, alice)
    stale.expires_at = datetime.now(timezone.utc) - timedelta(hours=1)
    db.commit()
    live_id = live.id

    assert sessions.purge_expired(db) == 1
    db.commit()
    assert sessions.resolve(db, live_id) is not None


# --- Guards ---

def test_require_auth(make_user, db):
    alice = make_user("alice")
    row = sessions.issue(db, alice)
    db.commit()

    assert require_auth(row.id, db).user_id == alice.id
    with pytest.raises(Unauthorized):
        require_auth(None, db)
    with pytest.raises(Unauthorized):
        require_auth("no-such-session", db)


def test_require_admin(make_user, admin, db):
    alice = make_user("alice")
    user_session = sessions.issue(db, alice)
    admin_session = sessions.issue(db, admin)
    db.commit()

    assert require_admin(admin_session) is admin_session
    with pytest.raises(Forbidden):
        require_admin(user_session)


def test_require_auth_rejects_disabled_account(make_user, db):
    alice = make_user("alice")
    row = sessions.issue(db, alice)
    db.commit()
    session_id = row.id

    alice.is_active = False
    db.commit()

    with pytest.raises(Unauthorized):
        require_auth(session_id, db)


# --- Client IP ---

def fake_request(peer, forwarded=None):
    headers = {"X-Forwarded-For": forwarded} if forwarded else {}
    client = SimpleNamespace(host=peer) if peer else None
    return SimpleNamespace(headers=headers, client=client)


def test_forwarded_for_is_ignored_from_untrusted_peers(monkeypatch):
    monkeypatch.setattr(settings, "trusted_proxies", ["10.0.0.1"])

    assert get_client_ip(fake_request("203.0.113.7", "1.2.3.4")) == "203.0.113.7"
    assert get_client_ip(fake_request("10.0.0.1", "1.2.3.4, 10.0.0.1")) == "1.2.3.4"
    assert get_client_ip(fake_request("10.0.0.1")) == "10.0.0.1"
    assert get_client_ip(fake_request(None, "1.2.3.4")) == "unknown"


def test_forwarded_for_is_ignored_without_trusted_proxies(monkeypatch):
    monkeypatch.setattr(settings, "trusted_proxies", [])
    assert get_client_ip(fake_request("203.0.113.7", "1.2.3.4")) == "203.0.113.7"
