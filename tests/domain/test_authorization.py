"""Role predicates."""

from escrow_kernel.domain import authorization
from escrow_kernel.domain.dtos import EscrowInfo

ESCROW = EscrowInfo(
    escrow_id="e1",
    project_id="p1",
    client="alice",
    contractor="bob",
    total_amount=100,
    released_amount=0,
    status="active",
)


def test_is_admin_requires_initialized_admin():
    assert authorization.is_admin("root", "root")
    assert not authorization.is_admin("root", None)
    assert not authorization.is_admin("alice", "root")


def test_party_predicates():
    assert authorization.is_escrow_client("alice", ESCROW)
    assert not authorization.is_escrow_client("bob", ESCROW)
    assert authorization.is_escrow_contractor("bob", ESCROW)
    assert not authorization.is_escrow_contractor("alice", ESCROW)


def test_missing_escrow_has_no_parties():
    assert not authorization.is_escrow_client("alice", None)
    assert not authorization.is_escrow_contractor("bob", None)


def test_manage_funds_matrix():
    assert authorization.can_manage_funds("alice", ESCROW, "root")
    assert authorization.can_manage_funds("root", ESCROW, "root")
    assert not authorization.can_manage_funds("bob", ESCROW, "root")
    assert not authorization.can_manage_funds("mallory", ESCROW, "root")


def test_dispute_matrix_excludes_admin():
    assert authorization.can_raise_dispute("alice", ESCROW)
    assert authorization.can_raise_dispute("bob", ESCROW)
    assert not authorization.can_raise_dispute("root", ESCROW)


def test_principals_compare_exactly():
    assert not authorization.is_escrow_client("Alice", ESCROW)
    assert not authorization.is_escrow_client("alice ", ESCROW)
