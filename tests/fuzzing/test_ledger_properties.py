"""
Hypothesis-based fuzzing of the ledger invariants.

Random sequences of escrow operations from random principals are driven
through the EscrowStateMachine.  After every step:
- every escrow satisfies released_amount <= total_amount
- released_amount equals the sum of its RELEASED payments
- released_amount never decreases and released payments never change
- refusals carry one of the stable error codes

Each example runs inside its own SAVEPOINT, rolled back afterwards, so
examples never see each other's escrows.
"""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from escrow_kernel.domain.dtos import OperationResult
from escrow_kernel.domain.values import ErrorCode, PaymentStatus

ESCROW_IDS = ("e1", "e2")
PAYMENT_IDS = ("pay1", "pay2", "pay3")
OPERATIONS = (
    "create_escrow",
    "add_payment",
    "release_payment",
    "close_escrow",
    "dispute_escrow",
    "resolve_dispute",
)


def _draw_step(data, principals, contractor):
    """Draw one (operation, args) pair for the state machine."""
    operation = data.draw(st.sampled_from(OPERATIONS), label="operation")
    caller = data.draw(st.sampled_from(principals), label="caller")
    escrow_id = data.draw(st.sampled_from(ESCROW_IDS), label="escrow_id")

    if operation == "create_escrow":
        total = data.draw(st.integers(min_value=0, max_value=200), label="total")
        return operation, (caller, escrow_id, "p1", contractor, total)
    if operation == "add_payment":
        payment_id = data.draw(st.sampled_from(PAYMENT_IDS), label="payment_id")
        amount = data.draw(st.integers(min_value=0, max_value=120), label="amount")
        return operation, (caller, escrow_id, payment_id, f"m-{payment_id}", amount)
    if operation == "release_payment":
        payment_id = data.draw(st.sampled_from(PAYMENT_IDS), label="payment_id")
        return operation, (caller, escrow_id, payment_id)
    if operation == "resolve_dispute":
        status = data.draw(st.sampled_from(("active", "closed", "limbo")), label="status")
        return operation, (caller, escrow_id, status)
    return operation, (caller, escrow_id)


def _released_payments(machine) -> set[tuple[str, str, int]]:
    return {
        (p.escrow_id, p.payment_id, p.amount)
        for escrow_id in ESCROW_IDS
        for p in machine.list_payments(escrow_id, PaymentStatus.RELEASED)
    }


class TestLedgerInvariantFuzzing:
    """Invariants hold at every point of random operation sequences."""

    @given(data=st.data())
    @settings(
        max_examples=75,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    )
    def test_invariants_hold_after_every_step(
        self, session, machine, admin, client, contractor, outsider, data
    ):
        principals = (admin, client, contractor, outsider)
        savepoint = session.begin_nested()
        try:
            released_totals: dict[str, int] = {}
            released = _released_payments(machine)
            steps = data.draw(st.integers(min_value=1, max_value=25), label="steps")

            for _ in range(steps):
                operation, args = _draw_step(data, principals, contractor)
                result = getattr(machine, operation)(*args)

                assert isinstance(result, OperationResult)
                if result.is_err:
                    assert isinstance(result.error, ErrorCode)

                machine.selector.verify_all()
                for escrow_id in ESCROW_IDS:
                    escrow = machine.get_escrow(escrow_id)
                    if escrow is None:
                        continue
                    assert escrow.released_amount <= escrow.total_amount
                    assert escrow.released_amount >= released_totals.get(escrow_id, 0)
                    released_totals[escrow_id] = escrow.released_amount

                now_released = _released_payments(machine)
                assert released <= now_released
                released = now_released

            assert machine.auditor.validate_chain()
        finally:
            savepoint.rollback()

    @given(
        total=st.integers(min_value=0, max_value=1_000),
        amounts=st.lists(st.integers(min_value=0, max_value=400), min_size=1, max_size=8),
    )
    @settings(
        max_examples=75,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    )
    def test_releases_never_exceed_total(self, session, machine, client, contractor, total, amounts):
        savepoint = session.begin_nested()
        try:
            assert machine.create_escrow(client, "e1", "p1", contractor, total).is_ok
            expected = 0
            for i, amount in enumerate(amounts):
                machine.add_payment(client, "e1", f"pay{i}", f"m{i}", amount)
                result = machine.release_payment(client, "e1", f"pay{i}")

                if expected + amount <= total:
                    assert result.is_ok
                    expected += amount
                else:
                    assert result.error == ErrorCode.INSUFFICIENT_FUNDS

                escrow = machine.selector.verify_escrow("e1")
                assert escrow.released_amount == expected
        finally:
            savepoint.rollback()
