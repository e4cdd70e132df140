"""Whitelist / Cap lifecycle against the in-process ledger."""

import pytest

from sealvault.errors import AuthorizationDenied, LinkageNotFound, NotFound, TransactionFailure
from sealvault.policy import AccessPolicyManager, RetryPolicy


@pytest.fixture
def manager(ledger, alice, settings):
    return AccessPolicyManager(ledger, alice, settings.package_id, settings.whitelist_module)


@pytest.fixture
def bob_manager(ledger, bob, settings):
    return AccessPolicyManager(ledger, bob, settings.package_id, settings.whitelist_module)


# ============================================================================
# create / get
# ============================================================================

def test_create_policy_returns_whitelist_and_cap(manager, ledger, alice):
    policy = manager.create_policy()

    assert policy.whitelist_id != policy.cap_id
    assert ledger.owner_of(policy.cap_id) == alice.address
    assert ledger.owner_of(policy.whitelist_id) is None  # shared
    assert manager.get_policy(policy.cap_id) == policy


def test_new_whitelist_has_no_members(manager):
    policy = manager.create_policy()
    assert manager.get_members(policy.whitelist_id) == []


def test_get_members_of_unknown_whitelist(manager):
    with pytest.raises(NotFound):
        manager.get_members("0x" + "ab" * 32)


def test_create_policy_with_unexpected_object_types(manager, monkeypatch):
    monkeypatch.setattr(manager, "object_type", lambda name: f"0x2::other::{name}")
    with pytest.raises(LinkageNotFound):
        manager.create_policy()


def test_create_policy_when_ledger_unreachable(manager, ledger):
    ledger.offline = True
    with pytest.raises(TransactionFailure):
        manager.create_policy()


# ============================================================================
# add / remove
# ============================================================================

def test_add_and_remove_members(manager, alice, bob):
    policy = manager.create_policy()

    manager.add_members(policy.whitelist_id, policy.cap_id, [alice.address, bob.address])
    assert manager.get_members(policy.whitelist_id) == [alice.address, bob.address]

    manager.remove_members(policy.whitelist_id, policy.cap_id, [alice.address])
    assert manager.get_members(policy.whitelist_id) == [bob.address]


def test_duplicate_add_is_a_no_op(manager, ledger, bob):
    policy = manager.create_policy()
    assert manager.add_members(policy.whitelist_id, policy.cap_id, [bob.address, bob.address]) is not None
    submitted = len(ledger.history)

    assert manager.add_members(policy.whitelist_id, policy.cap_id, [bob.address.upper().replace("0X", "0x")]) is None
    assert len(ledger.history) == submitted
    assert manager.get_members(policy.whitelist_id) == [bob.address]


def test_remove_non_member_is_a_no_op(manager, bob):
    policy = manager.create_policy()
    assert manager.remove_members(policy.whitelist_id, policy.cap_id, [bob.address]) is None


def test_cap_for_another_whitelist_is_denied(manager, bob):
    first = manager.create_policy()
    second = manager.create_policy()

    with pytest.raises(AuthorizationDenied) as excinfo:
        manager.add_members(first.whitelist_id, second.cap_id, [bob.address])
    assert excinfo.value.details == {"whitelist_id": first.whitelist_id, "cap_id": second.cap_id}


def test_cap_held_by_someone_else_is_denied(manager, bob_manager, bob):
    policy = manager.create_policy()
    with pytest.raises(AuthorizationDenied):
        bob_manager.add_members(policy.whitelist_id, policy.cap_id, [bob.address])
    assert manager.get_members(policy.whitelist_id) == []


# ============================================================================
# Retry hook
# ============================================================================

def test_retry_policy_retries_transaction_failures():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise TransactionFailure("temporarily unavailable")
        return "done"

    assert RetryPolicy(attempts=3).run(flaky) == "done"
    assert len(calls) == 3


def test_retry_policy_gives_up_after_last_attempt():
    def failing():
        raise TransactionFailure("still down")

    with pytest.raises(TransactionFailure):
        RetryPolicy(attempts=2).run(failing)


def test_retry_policy_does_not_retry_other_errors():
    calls = []

    def denied():
        calls.append(1)
        raise AuthorizationDenied("0x1", "0x2")

    with pytest.raises(AuthorizationDenied):
        RetryPolicy(attempts=5).run(denied)
    assert len(calls) == 1
