"""
Decoder registry.

Built-in decoders form a closed enumeration (BuiltinDecoder). Callers
extend the set with their own decoder objects or plain functions, either
inline in a SwipeConfig or registered here by name. Everything is
resolved to an IDecoder once, when the configuration is built, so the
detector only ever calls ``decode``.
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from ..models.card import CardRecord
from ..models.config import SwipeConfigError
from .patterns import (
    AMEX_DECODER,
    DISCOVER_DECODER,
    MASTERCARD_DECODER,
    VISA_DECODER,
    decode_generic,
)

DecodeFunc = Callable[[str], Optional[CardRecord]]


@runtime_checkable
class IDecoder(Protocol):
    """Interface for a stripe decoder."""

    name: str

    def decode(self, raw: str) -> Optional[CardRecord]:
        """
        Try to decode raw scan text.

        Args:
            raw: Captured characters, framing included

        Returns:
            A CardRecord, or None if this decoder does not recognise the text
        """
        ...


class BuiltinDecoder(Enum):
    """The decoders shipped with the package."""
    GENERIC = "generic"
    VISA = "visa"
    MASTERCARD = "mastercard"
    DISCOVER = "discover"
    AMEX = "amex"

    @property
    def decoder(self) -> "IDecoder":
        """Get the decoder object behind this member."""
        return _BUILTIN_DECODERS[self]


class FunctionDecoder:
    """Adapts a plain ``raw -> record`` function to the IDecoder interface."""

    def __init__(self, func: DecodeFunc, name: Optional[str] = None):
        self.func = func
        self.name = name or getattr(func, "__name__", "custom")

    def decode(self, raw: str) -> Optional[CardRecord]:
        return self.func(raw)

    def __repr__(self) -> str:
        return f"FunctionDecoder(name={self.name!r})"


_BUILTIN_DECODERS: Dict[BuiltinDecoder, IDecoder] = {
    BuiltinDecoder.GENERIC: FunctionDecoder(decode_generic, "generic"),
    BuiltinDecoder.VISA: VISA_DECODER,
    BuiltinDecoder.MASTERCARD: MASTERCARD_DECODER,
    BuiltinDecoder.DISCOVER: DISCOVER_DECODER,
    BuiltinDecoder.AMEX: AMEX_DECODER,
}


_REGISTRY: Dict[str, IDecoder] = {}


def register_decoder(decoder: Any, name: Optional[str] = None) -> IDecoder:
    """
    Register a custom decoder so configurations can refer to it by name.

    Args:
        decoder: Object with ``name``/``decode`` or a plain function
        name: Registry name (defaults to the decoder's own name)

    Returns:
        The registered IDecoder
    """
    resolved = _wrap(decoder, name)
    key = name or resolved.name
    if key in _builtin_names():
        raise SwipeConfigError(f"Cannot replace built-in decoder: {key}")
    _REGISTRY[key] = resolved
    return resolved


def unregister_decoder(name: str) -> None:
    """Remove a custom decoder from the registry."""
    _REGISTRY.pop(name, None)


def get_decoder(name: str) -> IDecoder:
    """
    Look up a decoder by name, built-ins first.

    Raises:
        SwipeConfigError: If no decoder has that name
    """
    try:
        return BuiltinDecoder(name).decoder
    except ValueError:
        pass
    try:
        return _REGISTRY[name]
    except KeyError as exc:
        raise SwipeConfigError(f"Unknown decoder: {name}") from exc


def list_decoders() -> Dict[str, IDecoder]:
    """Get all known decoders by name."""
    decoders: Dict[str, IDecoder] = {d.value: d.decoder for d in BuiltinDecoder}
    decoders.update(_REGISTRY)
    return decoders


def resolve_decoder(item: Any) -> IDecoder:
    """
    Turn one configuration entry into a decoder.

    Accepts a decoder name, a BuiltinDecoder member, an IDecoder, or a
    plain callable.
    """
    if isinstance(item, str):
        return get_decoder(item)
    return _wrap(item)


def _wrap(decoder: Any, name: Optional[str] = None) -> IDecoder:
    if isinstance(decoder, BuiltinDecoder):
        return decoder.decoder
    if isinstance(decoder, IDecoder):
        return decoder
    if callable(decoder):
        return FunctionDecoder(decoder, name)
    raise SwipeConfigError(f"Not a decoder: {decoder!r}")


def _builtin_names():
    return {d.value for d in BuiltinDecoder}


__all__ = [
    "IDecoder",
    "BuiltinDecoder",
    "FunctionDecoder",
    "DecodeFunc",
    "register_decoder",
    "unregister_decoder",
    "get_decoder",
    "list_decoders",
    "resolve_decoder",
]
