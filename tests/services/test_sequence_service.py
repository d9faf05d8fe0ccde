"""SequenceService: locked counter rows."""

from escrow_kernel.services.sequence_service import SequenceService


def test_first_value_is_one(session):
    assert SequenceService(session).next_value("fresh") == 1


def test_values_strictly_increase(session):
    service = SequenceService(session)
    values = [service.next_value(SequenceService.RELEASE_MARKER) for _ in range(5)]
    assert values == [1, 2, 3, 4, 5]


def test_sequences_are_independent(session):
    service = SequenceService(session)
    service.next_value("a")
    service.next_value("a")
    assert service.next_value("b") == 1
    assert service.current_value("a") == 2


def test_current_value_of_unused_sequence(session):
    assert SequenceService(session).current_value("never") is None


def test_rolled_back_savepoint_returns_values(session):
    service = SequenceService(session)
    service.next_value("markers")

    savepoint = session.begin_nested()
    service.next_value("markers")
    savepoint.rollback()

    assert service.current_value("markers") == 1
    assert service.next_value("markers") == 2
