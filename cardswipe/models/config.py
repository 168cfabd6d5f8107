"""
Configuration model for the scan detector.

SwipeConfig is immutable; re-initialize the detector to apply a new one.
The JSON-representable part round-trips through to_dict/from_dict for
the settings file handled by SwipeConfigService.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple, Union


# Current settings file version - increment when the schema changes
CONFIG_VERSION = 1

DEFAULT_INTERDIGIT_TIMEOUT_MS = 250

# Tried in this order; generic last because it accepts almost anything
DEFAULT_DECODERS = ("visa", "amex", "mastercard", "discover", "generic")


class SwipeConfigError(ValueError):
    """Raised when a detector configuration is invalid."""
    pass


@dataclass(frozen=True)
class SwipeConfig:
    """
    Detector configuration.

    decoders accepts decoder names, BuiltinDecoder members, objects with a
    ``decode`` method, or plain callables; they are resolved to decoder
    objects on construction. prefix_characters accepts a single string
    (one prefix) or a sequence of one-character strings.
    """
    enabled: bool = True
    interdigit_timeout_ms: int = DEFAULT_INTERDIGIT_TIMEOUT_MS
    decoders: Tuple[Any, ...] = DEFAULT_DECODERS
    first_line_only: bool = False
    prefix_characters: Tuple[str, ...] = ()
    on_success: Optional[Callable[..., Any]] = field(default=None, compare=False)
    on_failure: Optional[Callable[[str], Any]] = field(default=None, compare=False)
    debug: bool = False

    def __post_init__(self):
        from ..decoders.registry import resolve_decoder

        if self.interdigit_timeout_ms <= 0:
            raise SwipeConfigError(
                f"interdigit_timeout_ms must be positive, got {self.interdigit_timeout_ms}"
            )

        prefixes = self.prefix_characters
        if isinstance(prefixes, str):
            prefixes = (prefixes,)
        prefixes = tuple(prefixes)
        for prefix in prefixes:
            if not isinstance(prefix, str) or len(prefix) != 1:
                raise SwipeConfigError(
                    f"Prefix character must be exactly one character, got {prefix!r}"
                )

        decoders = tuple(resolve_decoder(item) for item in self.decoders)

        # Frozen dataclass: normalised values are written through object.__setattr__
        object.__setattr__(self, "prefix_characters", prefixes)
        object.__setattr__(self, "decoders", decoders)

    @property
    def prefix_codes(self) -> FrozenSet[int]:
        """Character codes of the configured prefix markers."""
        return frozenset(ord(p) for p in self.prefix_characters)

    @property
    def decoder_names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self.decoders)

    def with_callbacks(
        self,
        on_success: Optional[Callable[..., Any]] = None,
        on_failure: Optional[Callable[[str], Any]] = None,
    ) -> "SwipeConfig":
        """Get a copy of this config with the given callbacks attached."""
        return replace(
            self,
            on_success=on_success or self.on_success,
            on_failure=on_failure or self.on_failure,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (callbacks are dropped)."""
        return {
            "_version": CONFIG_VERSION,
            "enabled": self.enabled,
            "interdigit_timeout_ms": self.interdigit_timeout_ms,
            "decoders": list(self.decoder_names),
            "first_line_only": self.first_line_only,
            "prefix_characters": list(self.prefix_characters),
            "debug": self.debug,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        on_success: Optional[Callable[..., Any]] = None,
        on_failure: Optional[Callable[[str], Any]] = None,
    ) -> "SwipeConfig":
        """Create from dictionary, handling missing fields gracefully."""
        return cls(
            enabled=data.get("enabled", True),
            interdigit_timeout_ms=data.get("interdigit_timeout_ms", DEFAULT_INTERDIGIT_TIMEOUT_MS),
            decoders=tuple(data.get("decoders", DEFAULT_DECODERS)),
            first_line_only=data.get("first_line_only", False),
            prefix_characters=data.get("prefix_characters", ()),
            on_success=on_success,
            on_failure=on_failure,
            debug=data.get("debug", False),
        )
