"""Unit tests for the order status state machine."""

from datetime import datetime, timezone

import pytest

from storefront.db.models import Order, OrderStatus
from storefront.exceptions import InvalidTransitionError, ValidationError
from storefront.services.order_status import (
    ACTIVE_RAW,
    HISTORY_RAW,
    INVALID_STATUS_MESSAGE,
    allowed_transitions,
    apply_transition,
    is_valid_transition,
    normalize_status,
    parse_target_status,
    raw_values,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _order(status: str) -> Order:
    return Order(product_id=1, quantity=2, status=status)


class TestNormalizeStatus:
    """Tests for reading stored statuses."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("PLACED", OrderStatus.PLACED),
            ("SHIPPED", OrderStatus.SHIPPED),
            ("pending", OrderStatus.PLACED),
            ("confirmed", OrderStatus.PLACED),
            ("processing", OrderStatus.PROCESSING),
            ("cancelled", OrderStatus.CANCELLED),
            ("PENDING_CONFIRMATION", OrderStatus.PENDING_CONFIRMATION),
        ],
    )
    def test_known_values(self, raw, expected):
        assert normalize_status(raw) == expected

    def test_unknown_and_empty_read_as_placed(self):
        assert normalize_status(None) == OrderStatus.PLACED
        assert normalize_status("") == OrderStatus.PLACED
        assert normalize_status("teleported") == OrderStatus.PLACED

    def test_raw_groups_include_legacy_values(self):
        assert "confirmed" in ACTIVE_RAW
        assert "PLACED" in ACTIVE_RAW
        assert "delivered" in HISTORY_RAW
        assert "CANCELLED" in HISTORY_RAW
        assert "DELIVERED" not in ACTIVE_RAW

    def test_raw_values_for_single_status(self):
        assert set(raw_values(OrderStatus.SHIPPED)) == {"SHIPPED", "shipped"}


class TestTransitions:
    """Tests for the allowed transition table."""

    def test_forward_moves(self):
        assert is_valid_transition(OrderStatus.PLACED, OrderStatus.PROCESSING)
        assert is_valid_transition(OrderStatus.PROCESSING, OrderStatus.SHIPPED)
        assert is_valid_transition(OrderStatus.SHIPPED, OrderStatus.DELIVERED)

    def test_skipping_steps_is_rejected(self):
        assert not is_valid_transition(OrderStatus.PLACED, OrderStatus.SHIPPED)
        assert not is_valid_transition(OrderStatus.PLACED, OrderStatus.DELIVERED)

    def test_cancel_from_any_active_status(self):
        for status in (OrderStatus.PLACED, OrderStatus.PROCESSING, OrderStatus.SHIPPED):
            assert is_valid_transition(status, OrderStatus.CANCELLED)

    def test_final_statuses_have_no_exits(self):
        assert allowed_transitions(OrderStatus.DELIVERED) == ()
        assert allowed_transitions(OrderStatus.CANCELLED) == ()
        assert allowed_transitions(OrderStatus.PENDING_CONFIRMATION) == ()


class TestParseTargetStatus:
    def test_case_insensitive(self):
        assert parse_target_status(" shipped ") == OrderStatus.SHIPPED

    def test_missing(self):
        with pytest.raises(ValidationError, match="Status is required"):
            parse_target_status(None)

    def test_unknown(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_target_status("LOST")
        assert exc_info.value.message == INVALID_STATUS_MESSAGE

    def test_pending_confirmation_is_not_an_admin_status(self):
        with pytest.raises(ValidationError):
            parse_target_status("PENDING_CONFIRMATION")


class TestApplyTransition:
    """Tests for applying a transition to an order."""

    def test_stamps_timestamp(self):
        order = _order("PLACED")
        result = apply_transition(order, OrderStatus.PROCESSING, now=NOW)

        assert order.status == "PROCESSING"
        assert order.processed_at == NOW
        assert order.updated_at == NOW
        assert result.previous == OrderStatus.PLACED
        assert result.restores_stock is False

    def test_cancel_after_confirmation_restores_stock(self):
        order = _order("SHIPPED")
        result = apply_transition(order, OrderStatus.CANCELLED, now=NOW)

        assert result.restores_stock is True
        assert order.cancelled_at == NOW

    def test_cancel_of_legacy_pending_does_not_restore(self):
        order = _order("pending")
        result = apply_transition(order, OrderStatus.CANCELLED, now=NOW)

        assert result.previous == OrderStatus.PLACED
        assert result.restores_stock is False

    def test_cancel_of_legacy_confirmed_restores(self):
        result = apply_transition(_order("confirmed"), OrderStatus.CANCELLED, now=NOW)
        assert result.restores_stock is True

    def test_invalid_transition_lists_allowed(self):
        order = _order("PLACED")
        with pytest.raises(InvalidTransitionError) as exc_info:
            apply_transition(order, OrderStatus.DELIVERED)

        assert exc_info.value.message == (
            "Cannot change status from PLACED to DELIVERED. "
            "Allowed transitions: PROCESSING, CANCELLED"
        )
        assert order.status == "PLACED"

    def test_final_status_message(self):
        with pytest.raises(InvalidTransitionError, match=r"none \(final status\)"):
            apply_transition(_order("DELIVERED"), OrderStatus.CANCELLED)

    def test_pending_confirmation_message(self):
        with pytest.raises(InvalidTransitionError, match="awaiting customer confirmation"):
            apply_transition(_order("PENDING_CONFIRMATION"), OrderStatus.PLACED)
