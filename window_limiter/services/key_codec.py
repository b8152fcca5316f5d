"""Validation and serialization of limiter identities into window keys.

A caller identity is either a single token (``"alice"``, ``42``) or an ordered,
non-empty sequence of tokens (``["alice", "GET", "/orders"]`` is rejected,
``["alice", "get", "orders"]`` is fine). Every token must match
``^[a-z0-9._-]+$`` case-insensitively.

Keys look like ``<namespace>:limiter:<name>:<token>[:<token>...]`` where the
namespace segment is present only when configured.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence, Union

from window_limiter.core.errors import ConfigurationError, InvalidKeyError

SEPARATOR = ":"
LIMITER_SEGMENT = "limiter"
TOKEN_PATTERN = re.compile(r"[a-z0-9._-]+", re.IGNORECASE)

Token = Union[str, int]


@dataclass(frozen=True)
class SingleIdentity:
    token: Token


@dataclass(frozen=True)
class CompositeIdentity:
    tokens: tuple[Token, ...]


Identity = Union[SingleIdentity, CompositeIdentity]


def is_token(value: Any) -> bool:
    """Return True if ``value`` is a str/int (not bool) matching the pattern."""

    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return False
    return TOKEN_PATTERN.fullmatch(str(value)) is not None


def validate_token(value: Any, position: int | None = None) -> Token:
    """Validate one identity token.

    Args:
        value: Candidate token.
        position: Index inside a composite identity, used in the error.

    Returns:
        The token unchanged.

    Raises:
        InvalidKeyError: If the token is not a conforming str/int.
    """

    if is_token(value):
        return value

    label = "key" if position is None else f"key[{position}]"
    details = {"value_type": type(value).__name__}
    if position is not None:
        details["position"] = position
    raise InvalidKeyError(
        code="invalid_key",
        message=(
            f"{label} is not an alphanumeric string or number "
            f"(allowed: a-z, 0-9, '.', '_', '-') [type: {type(value).__name__}]"
        ),
        details=details,
    )


def to_identity(raw: Any) -> Identity:
    """Convert a caller-supplied key into a validated identity.

    Raises:
        InvalidKeyError: For empty sequences, non-conforming tokens, and
            unsupported types (mappings, booleans, None, floats, ...).
    """

    if isinstance(raw, (SingleIdentity, CompositeIdentity)):
        return raw
    if isinstance(raw, (list, tuple)):
        if not raw:
            raise InvalidKeyError(
                code="invalid_key",
                message="key sequence must not be empty",
                details={"value_type": type(raw).__name__},
            )
        return CompositeIdentity(
            tokens=tuple(validate_token(token, index) for index, token in enumerate(raw))
        )
    return SingleIdentity(token=validate_token(raw))


def build_prefix(name: Any, namespace: Any = None) -> str:
    """Build the ``[namespace:]limiter:name`` prefix of a limiter.

    Raises:
        ConfigurationError: If name or a non-empty namespace does not conform.
    """

    if not is_token(name):
        raise ConfigurationError(
            code="limiter_invalid_name",
            message="name must be an alphanumeric string or number (a-z, 0-9, '.', '_', '-')",
            details={"field": "name", "value_type": type(name).__name__},
        )

    prefix = f"{LIMITER_SEGMENT}{SEPARATOR}{name}"
    if namespace is None or namespace == "":
        return prefix
    if not is_token(namespace):
        raise ConfigurationError(
            code="limiter_invalid_namespace",
            message="namespace must be an alphanumeric string or number (options.namespace)",
            details={"field": "namespace", "value_type": type(namespace).__name__},
        )
    return f"{namespace}{SEPARATOR}{prefix}"


def build_key(prefix: str, identity: Identity) -> str:
    """Join a limiter prefix and an identity into the window key."""

    if isinstance(identity, SingleIdentity):
        tokens: Sequence[Token] = (identity.token,)
    else:
        tokens = identity.tokens
    return SEPARATOR.join([prefix, *(str(token) for token in tokens)])
