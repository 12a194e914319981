from __future__ import annotations

from dataclasses import dataclass
import enum
import os
from typing import TypeVar

from cart_totals.errors import ConfigError


class MalformedPricePolicy(enum.Enum):
    """What to do with an item whose ``price`` is missing or not a number."""

    ZERO = "zero"
    SKIP = "skip"
    FAIL = "fail"


class CartWriteMode(enum.Enum):
    """How derived fields are written onto the cart document."""

    # Partial update; fails when the cart document does not exist.
    UPDATE = "update"
    # Merge write; creates the cart document when it is missing.
    MERGE = "merge"


_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off", ""}

_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}

E = TypeVar("E", bound=enum.Enum)


@dataclass(frozen=True, slots=True)
class HandlerConfig:
    """Recalculation handler configuration loaded at process startup."""

    malformed_price: MalformedPricePolicy = MalformedPricePolicy.ZERO
    write_mode: CartWriteMode = CartWriteMode.UPDATE
    serialize_per_owner: bool = False
    log_level: str = "INFO"
    project_id: str | None = None


def _parse_enum(name: str, enum_type: type[E], default: E) -> E:
    value = os.environ.get(name, default.value).strip().lower()
    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        raise ConfigError(f"{name} must be one of: {choices}") from None


def _parse_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_WORDS:
        return True
    if normalized in _FALSE_WORDS:
        return False
    raise ConfigError(f"{name} must be a boolean (true/false), got {value!r}")


def load_handler_config_from_env() -> HandlerConfig:
    """Load handler config from env and validate it.

    Raises:
        ConfigError: If any variable holds an unsupported value.
    """
    log_level = os.environ.get("CART_TOTALS_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigError(
            f"CART_TOTALS_LOG_LEVEL must be one of: {', '.join(sorted(_LOG_LEVELS))}"
        )

    project_id = os.environ.get("GOOGLE_CLOUD_PROJECT", "").strip() or None

    return HandlerConfig(
        malformed_price=_parse_enum(
            "CART_TOTALS_MALFORMED_PRICE",
            MalformedPricePolicy,
            MalformedPricePolicy.ZERO,
        ),
        write_mode=_parse_enum(
            "CART_TOTALS_WRITE_MODE", CartWriteMode, CartWriteMode.UPDATE
        ),
        serialize_per_owner=_parse_bool("CART_TOTALS_SERIALIZE_PER_OWNER", False),
        log_level=log_level,
        project_id=project_id,
    )
