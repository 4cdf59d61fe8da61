"""JWK set parsing into verification keys."""

from typing import Any

from jwt import PyJWK, PyJWTError
from pydantic import ValidationError

from evesso.crypto.types import JWKSDocument

SIGNATURE_USE = "sig"


class KeySetFormatError(ValueError):
    """The document is not a usable JSON Web Key Set."""


def parse_jwk(entry: dict[str, Any]) -> PyJWK | None:
    """Build a public key from one JWK entry, or None if it cannot verify."""
    if not entry.get("kid"):
        return None
    if entry.get("use", SIGNATURE_USE) != SIGNATURE_USE:
        return None
    try:
        return PyJWK(entry)
    except PyJWTError:
        return None


def parse_key_set(document: object) -> dict[str, PyJWK]:
    """Parse every usable signing key in a JWKS document, keyed by kid.

    Entries without a kid, marked for encryption, or of an unsupported key
    type are skipped. A document with no usable key at all is rejected.
    """
    try:
        jwks = JWKSDocument.model_validate(document)
    except ValidationError as exc:
        raise KeySetFormatError("Malformed key set document") from exc

    keys: dict[str, PyJWK] = {}
    for entry in jwks.keys:
        key = parse_jwk(entry)
        if key is not None:
            keys[entry["kid"]] = key
    if not keys:
        raise KeySetFormatError("Key set contains no usable signing key")
    return keys
