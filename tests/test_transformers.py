"""Tests for the transformer registry and the booking reservation transformer."""

import logging

import pytest

from gateway.transformers import (
    ReverseNotSupportedError,
    Transformer,
    TransformerError,
    TransformerNotFoundError,
    TransformerRegistry,
    TransformerValidationError,
    register_default_transformers,
)
from gateway.transformers.reservation import (
    booking_reservation_transformer,
    clean_phone,
    format_date,
)


def reservation(**overrides) -> dict:
    data = {
        "reservationId": "R-1001",
        "guestName": "Ada Lovelace",
        "guestEmail": "ada@example.com",
        "guestPhone": "+44 (20) 7946-0958",
        "checkInDate": "2026-11-01",
        "checkOutDate": "2026-11-04",
        "roomType": "double",
        "numberOfGuests": 2,
        "totalAmount": 450.0,
        "currency": "EUR",
        "status": "confirmed",
        "specialRequests": "Late arrival",
    }
    data.update(overrides)
    return data


@pytest.fixture
def registry() -> TransformerRegistry:
    return register_default_transformers(TransformerRegistry())


class TestRegistry:
    def test_register_and_lookup(self):
        registry = TransformerRegistry()
        upper = Transformer(transform=lambda d: {k.upper(): v for k, v in d.items()})
        registry.register("upper", upper)

        assert registry.has("upper")
        assert registry.get("upper") is upper
        assert registry.list() == ["upper"]
        assert registry.execute("upper", {"a": 1}) == {"A": 1}

    def test_overwrite_is_logged_not_fatal(self, caplog):
        registry = TransformerRegistry()
        registry.register("t", Transformer(transform=lambda d: 1))
        with caplog.at_level(logging.WARNING, logger="gateway.transformers.registry"):
            registry.register("t", Transformer(transform=lambda d: 2))

        assert registry.execute("t", {"x": 1}) == 2
        assert "overwritten" in caplog.text

    def test_unknown_transformer(self):
        registry = TransformerRegistry()
        assert registry.get("missing") is None
        with pytest.raises(TransformerNotFoundError, match="missing"):
            registry.execute("missing", {})

    def test_validator_runs_before_mapping(self):
        calls = []

        def validate(data):
            calls.append("validate")
            raise TransformerValidationError("nope")

        def transform(data):
            calls.append("transform")
            return data

        registry = TransformerRegistry()
        registry.register("v", Transformer(transform=transform, validate=validate))
        with pytest.raises(TransformerValidationError, match="nope"):
            registry.execute("v", {"a": 1})
        assert calls == ["validate"]

    def test_none_input_rejected(self):
        registry = TransformerRegistry()
        registry.register("t", Transformer(transform=lambda d: d))
        with pytest.raises(TransformerValidationError):
            registry.execute("t", None)

    def test_mapping_errors_are_wrapped(self):
        registry = TransformerRegistry()
        registry.register("t", Transformer(transform=lambda d: d["missing"]))
        with pytest.raises(TransformerError, match="Transformation failed"):
            registry.execute("t", {"present": 1})

    def test_reverse(self):
        registry = TransformerRegistry()
        registry.register("fwd_only", Transformer(transform=lambda d: d))
        registry.register("both", Transformer(transform=lambda d: d, reverse=lambda d: {"r": d}))

        assert registry.reverse("both", 1) == {"r": 1}
        with pytest.raises(ReverseNotSupportedError):
            registry.reverse("fwd_only", {})
        with pytest.raises(TransformerNotFoundError):
            registry.reverse("missing", {})

    def test_logs_field_names_not_values(self, caplog, registry):
        with caplog.at_level(logging.INFO, logger="gateway.transformers.registry"):
            registry.execute("BookingReservationTransformer", reservation())

        record = next(r for r in caplog.records if "succeeded" in r.getMessage())
        assert "guestEmail" in record.context["input_fields"]
        assert "ada@example.com" not in caplog.text
        assert "Ada Lovelace" not in caplog.text

    def test_failure_logs_do_not_leak_values(self, caplog, registry):
        with caplog.at_level(logging.WARNING, logger="gateway.transformers.registry"):
            with pytest.raises(TransformerValidationError):
                registry.execute(
                    "BookingReservationTransformer", reservation(guestEmail="secret-at-nowhere")
                )
        assert "secret-at-nowhere" not in caplog.text


class TestBookingReservation:
    def test_default_registration(self, registry):
        assert registry.list() == ["BookingReservationTransformer"]

    def test_forward_mapping(self, registry):
        result = registry.execute("BookingReservationTransformer", reservation())

        assert result == {
            "reservation_id": "R-1001",
            "guest": {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "+442079460958"},
            "stay": {
                "check_in": "2026-11-01T00:00:00.000Z",
                "check_out": "2026-11-04T00:00:00.000Z",
                "room_type": "double",
                "guests": 2,
            },
            "payment": {"total": 450.0, "currency": "EUR"},
            "status": "confirmed",
            "notes": "Late arrival",
        }

    def test_reverse_mapping(self, registry):
        forward = registry.execute("BookingReservationTransformer", reservation())
        back = registry.reverse("BookingReservationTransformer", forward)

        assert back["reservationId"] == "R-1001"
        assert back["guestEmail"] == "ada@example.com"
        assert back["numberOfGuests"] == 2
        assert back["specialRequests"] == "Late arrival"

    @pytest.mark.parametrize(
        "field",
        [
            "reservationId",
            "guestName",
            "guestEmail",
            "checkInDate",
            "checkOutDate",
            "roomType",
            "numberOfGuests",
            "totalAmount",
        ],
    )
    def test_required_fields(self, registry, field):
        data = reservation()
        del data[field]
        with pytest.raises(TransformerValidationError, match=f"Required field missing: {field}"):
            registry.execute("BookingReservationTransformer", data)

    @pytest.mark.parametrize("email", ["no-at-sign.com", "a@b", "a b@c.com", "@c.com"])
    def test_invalid_email(self, registry, email):
        with pytest.raises(TransformerValidationError, match="Invalid email format"):
            registry.execute("BookingReservationTransformer", reservation(guestEmail=email))

    def test_invalid_date(self, registry):
        with pytest.raises(TransformerValidationError, match="Invalid date format"):
            registry.execute("BookingReservationTransformer", reservation(checkInDate="soon"))

    @pytest.mark.parametrize("check_out", ["2026-11-01", "2026-10-30"])
    def test_check_out_must_follow_check_in(self, registry, check_out):
        with pytest.raises(
            TransformerValidationError, match="Check-out date must be after check-in date"
        ):
            registry.execute("BookingReservationTransformer", reservation(checkOutDate=check_out))

    def test_optional_fields_may_be_absent(self):
        data = reservation()
        del data["guestPhone"]
        del data["specialRequests"]
        booking_reservation_transformer.validate(data)
        result = booking_reservation_transformer.transform(data)
        assert result["guest"]["phone"] == ""
        assert result["notes"] is None


def test_helpers():
    assert clean_phone("(555) 123-4567") == "5551234567"
    assert clean_phone(None) == ""
    assert format_date("2026-01-02T10:30:00+02:00") == "2026-01-02T08:30:00.000Z"
    assert format_date("garbage") == ""
