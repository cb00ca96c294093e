# Payload transformers
from gateway.transformers.registry import (
    ReverseNotSupportedError,
    Transformer,
    TransformerError,
    TransformerNotFoundError,
    TransformerRegistry,
    TransformerValidationError,
)
from gateway.transformers.reservation import booking_reservation_transformer


def register_default_transformers(registry: TransformerRegistry) -> TransformerRegistry:
    """Register the built-in transformers. Runs once while the app is built."""
    registry.register("BookingReservationTransformer", booking_reservation_transformer)
    return registry


__all__ = [
    "ReverseNotSupportedError",
    "Transformer",
    "TransformerError",
    "TransformerNotFoundError",
    "TransformerRegistry",
    "TransformerValidationError",
    "booking_reservation_transformer",
    "register_default_transformers",
]
