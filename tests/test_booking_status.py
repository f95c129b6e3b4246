"""Unit tests for status normalisation, labels and transition predicates."""

import pytest

from src.domain.booking_status import (
    CUSTOMER_LABELS,
    INTERNAL_LABELS,
    InvalidStateTransition,
    UnknownBookingStatus,
    allowed_actions,
    booking_status_label,
    can_admin_assign,
    can_admin_cancel,
    can_admin_complete,
    can_admin_refund,
    can_driver_cancel,
    can_driver_collect,
    can_driver_start,
    can_perform,
    expand_status_filter,
    is_booking_completed,
    is_legacy_booking_status,
    is_payment_due,
    is_terminal_status,
    next_status,
    normalize_booking_status,
    transition_error,
)
from src.domain.enums import (
    BOOKING_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingAction,
    BookingStatus,
    CanonicalBookingStatus,
    UserRole,
)

C = CanonicalBookingStatus

PREDICATES = {
    can_admin_assign: {C.CREATED},
    can_admin_complete: {C.COLLECTED},
    can_admin_cancel: {C.CREATED, C.ASSIGNED, C.IN_PROGRESS, C.COLLECTED},
    can_admin_refund: {C.CANCELLED},
    can_driver_start: {C.ASSIGNED},
    can_driver_collect: {C.IN_PROGRESS, C.COLLECTED},
    can_driver_cancel: {C.ASSIGNED, C.IN_PROGRESS, C.COLLECTED},
}


class TestNormalisation:
    @pytest.mark.parametrize("raw", list(BookingStatus))
    def test_every_raw_status_is_canonicalised(self, raw):
        assert isinstance(normalize_booking_status(raw), CanonicalBookingStatus)

    @pytest.mark.parametrize("canonical", list(CanonicalBookingStatus))
    def test_canonical_values_map_to_themselves(self, canonical):
        assert normalize_booking_status(canonical) == canonical
        assert normalize_booking_status(normalize_booking_status(canonical)) == canonical

    def test_legacy_aliases(self):
        assert normalize_booking_status(BookingStatus.SCHEDULED) == C.CREATED
        assert normalize_booking_status(BookingStatus.PAID) == C.COLLECTED

    def test_plain_strings_from_storage(self):
        assert normalize_booking_status("SCHEDULED") == C.CREATED
        assert normalize_booking_status("IN_PROGRESS") == C.IN_PROGRESS

    @pytest.mark.parametrize("value", ["LOST", "scheduled", "", None])
    def test_unknown_status_is_an_error(self, value):
        with pytest.raises(UnknownBookingStatus) as exc_info:
            normalize_booking_status(value)
        assert exc_info.value.value == value

    def test_legacy_detection(self):
        assert is_legacy_booking_status("PAID")
        assert is_legacy_booking_status(BookingStatus.SCHEDULED)
        assert not is_legacy_booking_status("COLLECTED")

    def test_status_filter_includes_legacy_values(self):
        assert set(expand_status_filter(C.CREATED)) == {
            BookingStatus.CREATED,
            BookingStatus.SCHEDULED,
        }
        assert set(expand_status_filter(C.COLLECTED)) == {
            BookingStatus.COLLECTED,
            BookingStatus.PAID,
        }
        assert expand_status_filter(C.REFUNDED) == [BookingStatus.REFUNDED]


class TestCompletion:
    @pytest.mark.parametrize("raw", list(BookingStatus))
    def test_completed_iff_canonical_completed(self, raw):
        assert is_booking_completed(raw) == (normalize_booking_status(raw) == C.COMPLETED)

    def test_examples(self):
        assert is_booking_completed("COMPLETED")
        assert not is_booking_completed("PAID")
        assert not is_booking_completed("SCHEDULED")

    def test_paid_is_payment_due(self):
        assert is_payment_due("PAID")
        assert is_payment_due("COLLECTED")
        assert not is_payment_due("COMPLETED")

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {C.COMPLETED, C.REFUNDED}
        assert is_terminal_status("REFUNDED")
        assert not is_terminal_status("CANCELLED")


class TestLabels:
    @pytest.mark.parametrize("canonical", list(CanonicalBookingStatus))
    @pytest.mark.parametrize("role", [UserRole.CUSTOMER, UserRole.ADMIN, None])
    def test_every_status_has_a_label(self, canonical, role):
        label = booking_status_label(canonical, role)
        assert isinstance(label, str) and label

    def test_label_tables_are_exhaustive(self):
        assert set(CUSTOMER_LABELS) == set(CanonicalBookingStatus)
        assert set(INTERNAL_LABELS) == set(CanonicalBookingStatus)

    def test_collected_labels(self):
        assert booking_status_label("COLLECTED", UserRole.CUSTOMER) == "Payment Due"
        assert booking_status_label("COLLECTED", UserRole.ADMIN) == "Collected"

    def test_legacy_status_uses_canonical_label(self):
        assert booking_status_label("PAID", UserRole.CUSTOMER) == "Payment Due"
        assert booking_status_label("SCHEDULED", UserRole.DRIVER) == "Created"

    def test_customer_sees_assigned_as_scheduled(self):
        assert booking_status_label("ASSIGNED", UserRole.CUSTOMER) == "Scheduled"

    def test_default_viewer_is_internal(self):
        assert booking_status_label("IN_PROGRESS") == "In Progress"
        assert booking_status_label("CREATED") == "Created"


class TestTransitionPredicates:
    @pytest.mark.parametrize("predicate,allowed", list(PREDICATES.items()))
    @pytest.mark.parametrize("raw", list(BookingStatus))
    def test_predicate_matches_allowed_set(self, predicate, allowed, raw):
        assert predicate(raw) == (normalize_booking_status(raw) in allowed)

    def test_examples(self):
        assert can_admin_assign("CREATED")
        assert not can_admin_assign("ASSIGNED")
        assert can_driver_start("ASSIGNED")
        assert not can_driver_start("CREATED")
        assert can_admin_refund("CANCELLED")
        assert not can_admin_refund("COMPLETED")

    def test_legacy_scheduled_can_be_assigned(self):
        assert can_admin_assign("SCHEDULED")

    def test_legacy_paid_can_be_completed(self):
        assert can_admin_complete("PAID")

    def test_terminal_states_allow_nothing(self):
        for status in TERMINAL_STATUSES:
            for role in UserRole:
                assert allowed_actions(status, role) == []

    def test_customers_cannot_act(self):
        for status in CanonicalBookingStatus:
            assert allowed_actions(status, UserRole.CUSTOMER) == []

    def test_super_admin_has_admin_rights(self):
        for status in CanonicalBookingStatus:
            assert allowed_actions(status, UserRole.SUPER_ADMIN) == allowed_actions(
                status, UserRole.ADMIN
            )

    def test_driver_cannot_complete(self):
        assert not can_perform("COLLECTED", UserRole.DRIVER, BookingAction.COMPLETE)

    def test_allowed_actions_for_collected(self):
        assert allowed_actions("COLLECTED", UserRole.ADMIN) == [
            BookingAction.COMPLETE,
            BookingAction.CANCEL,
        ]
        assert allowed_actions("PAID", UserRole.DRIVER) == [
            BookingAction.COLLECT,
            BookingAction.CANCEL,
        ]

    def test_every_rule_source_and_target_is_canonical(self):
        for rule in BOOKING_TRANSITIONS.values():
            assert rule.target in CanonicalBookingStatus
            assert rule.sources <= set(CanonicalBookingStatus)


class TestNextStatus:
    def test_targets(self):
        assert next_status("SCHEDULED", UserRole.ADMIN, BookingAction.ASSIGN) == C.ASSIGNED
        assert next_status("ASSIGNED", UserRole.DRIVER, BookingAction.START) == C.IN_PROGRESS
        assert next_status("COLLECTED", UserRole.DRIVER, BookingAction.COLLECT) == C.COLLECTED
        assert next_status("CANCELLED", UserRole.SUPER_ADMIN, BookingAction.REFUND) == C.REFUNDED

    def test_invalid_transition_message(self):
        with pytest.raises(InvalidStateTransition, match="from CREATED to COMPLETED"):
            next_status("SCHEDULED", UserRole.ADMIN, BookingAction.COMPLETE)

    def test_missing_rule_message(self):
        with pytest.raises(InvalidStateTransition, match="DRIVER cannot refund bookings"):
            next_status("CANCELLED", UserRole.DRIVER, BookingAction.REFUND)

    def test_transition_error(self):
        assert transition_error("ASSIGNED", UserRole.DRIVER, BookingAction.START) is None
        assert transition_error("COMPLETED", UserRole.ADMIN, BookingAction.CANCEL) == (
            "Invalid status transition from COMPLETED to CANCELLED."
        )

    def test_unknown_status_is_not_a_refusal(self):
        with pytest.raises(UnknownBookingStatus):
            next_status("LOST", UserRole.ADMIN, BookingAction.CANCEL)


def test_pickup_lifecycle_from_legacy_booking():
    status = "SCHEDULED"
    assert can_admin_assign(status)
    status = next_status(status, UserRole.ADMIN, BookingAction.ASSIGN).value
    assert status == "ASSIGNED"

    assert can_driver_start(status)
    status = next_status(status, UserRole.DRIVER, BookingAction.START).value
    assert status == "IN_PROGRESS"

    assert can_driver_collect(status)
    status = next_status(status, UserRole.DRIVER, BookingAction.COLLECT).value
    assert status == "COLLECTED"

    assert can_admin_complete(status)
    status = next_status(status, UserRole.ADMIN, BookingAction.COMPLETE).value
    assert status == "COMPLETED"

    assert not can_admin_cancel(status)
    assert is_booking_completed(status)
