"""Unit tests for domain value objects."""

import pytest

from app.domain.exceptions import ValidationError
from app.domain.value_objects import BatchStatus, DispatchStatus, Quantity, ScanCode


class TestBatchStatus:
    """Tests for the batch lifecycle order."""

    def test_rank_follows_custody_order(self):
        """Statuses rank created < dispatched < received < administered."""
        ranks = [status.rank for status in BatchStatus]
        assert ranks == [0, 1, 2, 3]

    def test_successor_chain(self):
        assert BatchStatus.CREATED.successor() is BatchStatus.DISPATCHED
        assert BatchStatus.DISPATCHED.successor() is BatchStatus.RECEIVED
        assert BatchStatus.RECEIVED.successor() is BatchStatus.ADMINISTERED
        assert BatchStatus.ADMINISTERED.successor() is None

    def test_can_advance_to_immediate_successor(self):
        assert BatchStatus.CREATED.can_advance_to(BatchStatus.DISPATCHED)

    @pytest.mark.parametrize(
        "current, requested",
        [
            (BatchStatus.CREATED, BatchStatus.RECEIVED),
            (BatchStatus.CREATED, BatchStatus.ADMINISTERED),
            (BatchStatus.RECEIVED, BatchStatus.DISPATCHED),
            (BatchStatus.ADMINISTERED, BatchStatus.CREATED),
            (BatchStatus.DISPATCHED, BatchStatus.DISPATCHED),
        ],
    )
    def test_rejects_skips_regressions_and_self_loops(self, current, requested):
        """Only the next status is reachable."""
        assert not current.can_advance_to(requested)

    def test_values_are_lowercase_strings(self):
        assert BatchStatus("administered") is BatchStatus.ADMINISTERED


class TestDispatchStatus:
    def test_open_statuses(self):
        assert DispatchStatus.PENDING.is_open
        assert DispatchStatus.IN_TRANSIT.is_open
        assert not DispatchStatus.RECEIVED.is_open


class TestScanCode:
    """Tests for ScanCode value object."""

    def test_value_kept_verbatim(self):
        code = ScanCode(" QR1733300000000 ")
        assert code.value == " QR1733300000000 "
        assert str(code) == " QR1733300000000 "

    @pytest.mark.parametrize("raw", ["", "   ", "\t\n"])
    def test_blank_rejected(self, raw):
        with pytest.raises(ValidationError, match="must not be blank"):
            ScanCode(raw)

    def test_normalized_strips_whitespace_and_folds_case(self):
        assert ScanCode(" qr 1733 3000\t00000 ").normalized == "QR1733300000000"

    def test_immutability(self):
        """ScanCode should be immutable (frozen dataclass)."""
        code = ScanCode("QR1")
        with pytest.raises((AttributeError, TypeError)):
            code.value = "QR2"  # type: ignore[misc]

    def test_equal_normalized_forms_match(self):
        assert ScanCode("qr 17333").loosely_matches("QR17333")

    def test_decoded_string_with_extra_characters_matches(self):
        """OCR noise around the code still resolves to it."""
        assert ScanCode("QR1733300000000 (mirror)").loosely_matches("QR1733300000000")

    def test_fragment_of_code_matches(self):
        assert ScanCode("33300000").loosely_matches("QR1733300000000")

    def test_short_fragment_only_matches_exactly(self):
        """Very short strings would match almost anything by substring."""
        assert not ScanCode("QR1").loosely_matches("QR1733300000000")
        assert ScanCode("qr1").loosely_matches("QR1")

    def test_unrelated_codes_do_not_match(self):
        assert not ScanCode("QR1733300000000").loosely_matches("BC9988776655")


class TestQuantity:
    """Tests for Quantity value object."""

    def test_valid_quantity(self):
        qty = Quantity(200)
        assert qty.units == 200
        assert int(qty) == 200
        assert str(qty) == "200 units"

    @pytest.mark.parametrize("units", [0, -1, -500])
    def test_non_positive_rejected(self, units):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(units)

    @pytest.mark.parametrize("units", [1.5, "10", True, None])
    def test_non_integer_rejected(self, units):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(units)  # type: ignore[arg-type]

    def test_error_names_field(self):
        with pytest.raises(ValidationError) as exc_info:
            Quantity(0)
        assert exc_info.value.field == "quantity"
