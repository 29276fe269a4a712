"""
Tests for the account repository.
"""
import pytest
from datetime import datetime, timezone
from sqlalchemy.orm import Session

from license_api.core.errors import DuplicateUsername, NotFound
from license_api.db.account_repository import AccountRepository
from license_api.core.security import hash_password


def test_create_sets_first_login(repo: AccountRepository):
    """A new account counts its signup as the first login."""
    account = repo.create("Player_One", hash_password("testpass123"))

    assert account.id is not None
    assert account.username == "Player_One"
    assert account.total_logins == 1
    assert account.last_login_at is not None
    assert account.subscription_status == "none"
    assert account.hwid is None
    assert account.hwid_locked_at is None


def test_find_by_username_is_case_insensitive(repo: AccountRepository):
    created = repo.create("Player_One", hash_password("testpass123"))

    assert repo.find_by_username("player_one").id == created.id
    assert repo.find_by_username("PLAYER_ONE").id == created.id
    assert repo.find_by_username("someone_else") is None
    assert repo.find_by_username("") is None


def test_duplicate_username_differing_in_case(repo: AccountRepository):
    """Usernames are unique ignoring case."""
    repo.create("Player_One", hash_password("testpass123"))

    with pytest.raises(DuplicateUsername):
        repo.create("PLAYER_one", hash_password("otherpass123"))


def test_unique_index_rejects_duplicate_after_precheck(repo: AccountRepository, monkeypatch):
    """A concurrent signup that slips past the lookup still hits the unique index."""
    repo.create("racer", hash_password("testpass123"))
    monkeypatch.setattr(repo, "find_by_username", lambda username: None)

    with pytest.raises(DuplicateUsername):
        repo.create("Racer", hash_password("testpass123"))


def test_username_available(repo: AccountRepository):
    repo.create("taken_name", hash_password("testpass123"))

    assert repo.username_available("TAKEN_NAME") is False
    assert repo.username_available("free_name") is True


def test_find_by_external_customer_id(make_account, repo: AccountRepository):
    account = make_account(stripe_customer_id="cus_123")

    assert repo.find_by_external_customer_id("cus_123").id == account.id
    assert repo.find_by_external_customer_id("cus_unknown") is None
    assert repo.find_by_external_customer_id(None) is None


def test_update_only_touches_given_fields(make_account, repo: AccountRepository):
    """A partial update leaves every other column as it was."""
    account = make_account(hwid="HW-1", hwid_locked_at=datetime(2026, 1, 1, tzinfo=timezone.utc))

    repo.update(account.id, {"subscription_status": "active", "subscription_package": "monthly"})

    account = repo.find_by_id(account.id)
    assert account.subscription_status == "active"
    assert account.subscription_package == "monthly"
    assert account.hwid == "HW-1"
    assert account.total_logins == 1


def test_update_unknown_account(repo: AccountRepository):
    with pytest.raises(NotFound):
        repo.update(9999, {"subscription_status": "active"})


def test_update_rejects_immutable_and_unknown_fields(make_account, repo: AccountRepository):
    account = make_account()

    with pytest.raises(ValueError):
        repo.update(account.id, {"username_key": "hijack"})
    with pytest.raises(ValueError):
        repo.update(account.id, {"not_a_column": 1})


def test_record_login_increments(make_account, repo: AccountRepository, db: Session):
    account = make_account()

    repo.record_login(account.id)
    repo.record_login(account.id)

    db.expire_all()
    assert repo.find_by_id(account.id).total_logins == 3


def test_bind_hwid_if_null_only_binds_once(make_account, repo: AccountRepository):
    account = make_account()

    assert repo.bind_hwid_if_null(account.id, "HW-1") is True
    assert repo.bind_hwid_if_null(account.id, "HW-2") is False

    account = repo.find_by_id(account.id)
    assert account.hwid == "HW-1"
    assert account.hwid_locked_at is not None


def test_clear_hwid_if_bound(make_account, repo: AccountRepository):
    account = make_account()
    repo.bind_hwid_if_null(account.id, "HW-1")

    assert repo.clear_hwid_if_bound(account.id) is True
    assert repo.clear_hwid_if_bound(account.id) is False

    account = repo.find_by_id(account.id)
    assert account.hwid is None
    assert account.hwid_locked_at is None
