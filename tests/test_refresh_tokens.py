from __future__ import annotations

from datetime import timedelta

import pytest

from models import storage
from models.refresh_token import RefreshToken
from utils import security
from utils.exceptions import NotFound

LIFETIME = timedelta(days=7)


def test_issue_persists_opaque_value_with_expiry(make_user) -> None:
    user = make_user()

    rt = RefreshToken.issue(user.id, LIFETIME)

    assert len(rt.token) == 64
    assert rt.user_id == user.id
    assert rt.expires_at > security.utc_now() + LIFETIME - timedelta(minutes=1)
    assert RefreshToken.find_by_value(rt.token).id == rt.id


def test_user_may_hold_several_live_tokens(make_user) -> None:
    user = make_user()

    first = RefreshToken.issue(user.id, LIFETIME)
    second = RefreshToken.issue(user.id, LIFETIME)

    assert first.token != second.token
    assert storage.count(RefreshToken) == 2


def test_find_by_value_unknown_or_empty(make_user) -> None:
    assert RefreshToken.find_by_value("0" * 64) is None
    assert RefreshToken.find_by_value(None) is None
    assert RefreshToken.find_by_value("") is None


def test_is_expired_only_after_expiry(make_user, clock) -> None:
    rt = RefreshToken.issue(make_user().id, timedelta(hours=1))

    assert not rt.is_expired()
    assert rt.is_expired(now=rt.expires_at + timedelta(seconds=1))
    clock(timedelta(hours=2))
    assert rt.is_expired()


def test_revoke_is_idempotent(make_user) -> None:
    rt = RefreshToken.issue(make_user().id, LIFETIME)

    assert RefreshToken.revoke(rt.id) is True
    assert RefreshToken.revoke(rt.id) is False
    assert RefreshToken.find_by_value(rt.token) is None


def test_rotate_consumes_token_and_issues_replacement_for_same_owner(make_user) -> None:
    user = make_user()
    rt = RefreshToken.issue(user.id, LIFETIME)

    replacement = RefreshToken.rotate(rt.token, LIFETIME)

    assert replacement.token != rt.token
    assert replacement.user_id == user.id
    assert RefreshToken.find_by_value(rt.token) is None


def test_rotated_value_never_authenticates_again(make_user) -> None:
    rt = RefreshToken.issue(make_user().id, LIFETIME)
    RefreshToken.rotate(rt.token, LIFETIME)

    with pytest.raises(NotFound):
        RefreshToken.rotate(rt.token, LIFETIME)


def test_rotate_unknown_token_fails(make_user) -> None:
    with pytest.raises(NotFound, match="not in database"):
        RefreshToken.rotate("deadbeef", LIFETIME)


def test_rotate_expired_token_deletes_it_and_fails(make_user, clock) -> None:
    rt = RefreshToken.issue(make_user().id, timedelta(minutes=5))
    clock(timedelta(minutes=6))

    with pytest.raises(NotFound, match="expired"):
        RefreshToken.rotate(rt.token, LIFETIME)
    assert RefreshToken.find_by_value(rt.token) is None


def test_revoke_all_for_user_leaves_other_users_alone(make_user) -> None:
    alice = make_user(email="alice@example.com")
    bob = make_user(email="bob@example.com")
    RefreshToken.issue(alice.id, LIFETIME)
    RefreshToken.issue(alice.id, LIFETIME)
    kept = RefreshToken.issue(bob.id, LIFETIME)

    assert RefreshToken.revoke_all_for(alice.id) == 2
    assert storage.count(RefreshToken) == 1
    assert RefreshToken.find_by_value(kept.token) is not None
