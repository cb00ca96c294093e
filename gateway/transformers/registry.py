"""Transformer registry - named payload shape converters."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

TransformFunc = Callable[[Any], Any]
ValidateFunc = Callable[[Any], None]


class TransformerError(Exception):
    """Base class for transformer failures."""


class TransformerNotFoundError(TransformerError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Transformer "{name}" not found')


class TransformerValidationError(TransformerError):
    """Input rejected before any mapping ran."""


class ReverseNotSupportedError(TransformerError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Transformer "{name}" does not support reverse transformation')


@dataclass(frozen=True)
class Transformer:
    """Capability record for one transformer.

    ``transform`` is required. ``reverse`` and ``validate`` are optional and
    used only when present. A validator signals rejection by raising
    ``TransformerValidationError`` with a descriptive message.
    """

    transform: TransformFunc
    reverse: TransformFunc | None = None
    validate: ValidateFunc | None = None


def _field_names(data: Any) -> list[str]:
    return sorted(data.keys()) if isinstance(data, dict) else []


class TransformerRegistry:
    """Explicitly constructed catalog of transformers."""

    def __init__(self) -> None:
        self._transformers: dict[str, Transformer] = {}

    def register(self, name: str, transformer: Transformer) -> None:
        if name in self._transformers:
            logger.warning(f'Transformer "{name}" is being overwritten')
        self._transformers[name] = transformer
        logger.debug(f'Transformer "{name}" registered')

    def get(self, name: str) -> Transformer | None:
        return self._transformers.get(name)

    def has(self, name: str) -> bool:
        return name in self._transformers

    def list(self) -> list[str]:
        return list(self._transformers)

    def _require(self, name: str) -> Transformer:
        transformer = self.get(name)
        if transformer is None:
            raise TransformerNotFoundError(name)
        return transformer

    def execute(self, name: str, data: Any) -> Any:
        """Validate, then run the forward mapping.

        Only field names are logged, never values.
        """
        transformer = self._require(name)
        if data is None:
            raise TransformerValidationError("Input validation failed")

        try:
            if transformer.validate is not None:
                transformer.validate(data)
            output = transformer.transform(data)
        except TransformerError as e:
            logger.warning(
                f'Transformer "{name}" failed: {e}',
                extra={"context": {"transformer": name, "input_fields": _field_names(data)}},
            )
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(
                f'Transformer "{name}" failed: {type(e).__name__}',
                extra={"context": {"transformer": name, "input_fields": _field_names(data)}},
            )
            raise TransformerError(f"Transformation failed: {e}") from e

        logger.info(
            f'Transformer "{name}" succeeded',
            extra={
                "context": {
                    "transformer": name,
                    "input_fields": _field_names(data),
                    "output_fields": _field_names(output),
                }
            },
        )
        return output

    def reverse(self, name: str, data: Any) -> Any:
        """Run the reverse mapping; fails if the transformer has none."""
        transformer = self._require(name)
        if transformer.reverse is None:
            raise ReverseNotSupportedError(name)
        try:
            return transformer.reverse(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransformerError(f"Reverse transformation failed: {e}") from e
