"""
Stripe decoders: Luhn checksum, built-in track parsers, and the registry
of caller-supplied decoders.
"""

from .luhn import luhn_checksum
from .patterns import PatternDecoder, decode_generic
from .registry import (
    IDecoder,
    BuiltinDecoder,
    FunctionDecoder,
    register_decoder,
    unregister_decoder,
    get_decoder,
    list_decoders,
    resolve_decoder,
)
from .yaml_loader import YamlDecoderLoader, DecoderDefinitionError, load_yaml_decoders

__all__ = [
    "luhn_checksum",
    "PatternDecoder",
    "decode_generic",
    "IDecoder",
    "BuiltinDecoder",
    "FunctionDecoder",
    "register_decoder",
    "unregister_decoder",
    "get_decoder",
    "list_decoders",
    "resolve_decoder",
    "YamlDecoderLoader",
    "DecoderDefinitionError",
    "load_yaml_decoders",
]
