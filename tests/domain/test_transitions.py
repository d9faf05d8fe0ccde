"""Pure guard functions for escrow and payment transitions."""

import pytest

from escrow_kernel.domain import transitions
from escrow_kernel.domain.dtos import EscrowInfo, OperationResult, PaymentInfo
from escrow_kernel.domain.values import (
    MAX_AMOUNT,
    MAX_ID_LENGTH,
    MAX_PRINCIPAL_LENGTH,
    ErrorCode,
    EscrowStatus,
    PaymentStatus,
)
from escrow_kernel.exceptions import (
    EscrowNotActiveError,
    EscrowNotDisputedError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidIdentifierError,
    InvalidPrincipalError,
    InvalidResolutionStatusError,
    PaymentNotPendingError,
)


def _escrow(status="active", total=1000, released=0) -> EscrowInfo:
    return EscrowInfo(
        escrow_id="e1",
        project_id="p1",
        client="c",
        contractor="k",
        total_amount=total,
        released_amount=released,
        status=status,
    )


def _payment(status="pending") -> PaymentInfo:
    return PaymentInfo(
        escrow_id="e1", payment_id="m1", milestone_id="ms1", amount=10, status=status
    )


class TestValidateAmount:

    @pytest.mark.parametrize("amount", [0, 1, MAX_AMOUNT])
    def test_accepts_non_negative_integers(self, amount):
        assert transitions.validate_amount("amount", amount) == amount

    @pytest.mark.parametrize("amount", [-1, MAX_AMOUNT + 1, 2**63, 1.5, "10", None, True])
    def test_rejects_everything_else(self, amount):
        with pytest.raises(InvalidAmountError) as exc_info:
            transitions.validate_amount("amount", amount)
        assert exc_info.value.code == ErrorCode.INVALID_ARGUMENT


class TestBounds:

    def test_identifier_at_limit(self):
        key = "k" * MAX_ID_LENGTH
        assert transitions.validate_identifier("escrow_id", key) == key

    @pytest.mark.parametrize("value", ["k" * (MAX_ID_LENGTH + 1), None, 7])
    def test_identifier_rejected(self, value):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            transitions.validate_identifier("payment_id", value)
        assert exc_info.value.code == ErrorCode.INVALID_ARGUMENT
        assert exc_info.value.max_length == MAX_ID_LENGTH

    def test_principal_at_limit(self):
        who = "w" * MAX_PRINCIPAL_LENGTH
        assert transitions.validate_principal("contractor", who) == who

    @pytest.mark.parametrize("value", ["", "w" * (MAX_PRINCIPAL_LENGTH + 1), None])
    def test_principal_rejected(self, value):
        with pytest.raises(InvalidPrincipalError):
            transitions.validate_principal("contractor", value)


class TestStateGuards:

    def test_escrow_transitions_return_target(self):
        active = _escrow("active")
        assert transitions.require_escrow_status("close_escrow", active) == EscrowStatus.CLOSED
        assert transitions.require_escrow_status("dispute_escrow", active) == EscrowStatus.DISPUTED
        assert transitions.require_escrow_status("add_payment", active) == EscrowStatus.ACTIVE
        assert transitions.require_escrow_status("resolve_dispute", _escrow("disputed")) is None

    @pytest.mark.parametrize("operation", ["close_escrow", "dispute_escrow", "add_payment", "release_payment"])
    @pytest.mark.parametrize("status", ["disputed", "closed"])
    def test_active_only_operations(self, operation, status):
        with pytest.raises(EscrowNotActiveError) as exc_info:
            transitions.require_escrow_status(operation, _escrow(status))
        assert exc_info.value.code == ErrorCode.INVALID_STATE

    def test_resolution_needs_dispute(self):
        with pytest.raises(EscrowNotDisputedError):
            transitions.require_escrow_status("resolve_dispute", _escrow("active"))

    def test_payment_release(self):
        target = transitions.require_payment_status("release_payment", _payment("pending"))
        assert target == PaymentStatus.RELEASED
        with pytest.raises(PaymentNotPendingError):
            transitions.require_payment_status("release_payment", _payment("released"))

    def test_only_pending_payments_overwritten(self):
        with pytest.raises(PaymentNotPendingError):
            transitions.require_payment_status("add_payment", _payment("released"))

    def test_closed_is_terminal(self):
        leaving_closed = [
            op for op, (required, _) in transitions.ESCROW_TRANSITIONS.items()
            if required is EscrowStatus.CLOSED
        ]
        assert leaving_closed == []


class TestRequireFunds:

    def test_exact_remaining_amount_allowed(self):
        transitions.require_funds(_escrow(total=100, released=60), 40)

    def test_over_total_refused(self):
        with pytest.raises(InsufficientFundsError) as exc_info:
            transitions.require_funds(_escrow(total=100, released=60), 41)
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_FUNDS
        assert exc_info.value.requested == 41


class TestResolutionTarget:

    def test_restricted_accepts_active_and_closed(self):
        assert transitions.resolution_target("e1", "active") == "active"
        assert transitions.resolution_target("e1", EscrowStatus.CLOSED) == "closed"

    @pytest.mark.parametrize("status", ["disputed", "weird", ""])
    def test_restricted_rejects_others(self, status):
        with pytest.raises(InvalidResolutionStatusError) as exc_info:
            transitions.resolution_target("e1", status)
        assert exc_info.value.allowed == ("active", "closed")

    def test_unrestricted_stores_any_short_status(self):
        assert transitions.resolution_target("e1", "weird", restricted=False) == "weird"

    def test_unrestricted_still_bounds_length(self):
        with pytest.raises(InvalidResolutionStatusError):
            transitions.resolution_target("e1", "x" * 51, restricted=False)
        with pytest.raises(InvalidResolutionStatusError):
            transitions.resolution_target("e1", "", restricted=False)


class TestOperationResult:

    def test_ok_wire_shape(self):
        assert OperationResult.ok().to_dict() == {"ok": True, "value": True}

    def test_err_wire_shape(self):
        result = OperationResult.err(ErrorCode.NOT_FOUND, "missing")
        assert result.is_err
        assert result.to_dict() == {"err": 102}
