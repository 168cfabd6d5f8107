"""
YAML Decoder Definitions

Loads declarative issuer decoders from YAML so new account-number
families can be recognised without writing Python code:

    decoders:
      - name: diners
        account_pattern: "3(?:0[0-5]|[689][0-9])[0-9]{11}"
        luhn: true
    register: true
"""

import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from .patterns import PatternDecoder
from .registry import register_decoder

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_\-]*$")


class DecoderDefinitionError(Exception):
    """Exception raised when a YAML decoder definition is invalid."""

    def __init__(self, message: str, source: Optional[str] = None, index: Optional[int] = None):
        self.source = source
        self.index = index
        location = ""
        if source:
            location = f" in {source}"
        if index is not None:
            location += f" at entry {index}"
        super().__init__(f"{message}{location}")


class YamlDecoderLoader:
    """
    Loader for YAML decoder definition files.

    Converts definitions into PatternDecoder objects, optionally
    registering them by name.
    """

    @classmethod
    def load(cls, path: Union[str, Path]) -> List[PatternDecoder]:
        """
        Load decoder definitions from a YAML file.

        Args:
            path: Path to the YAML file

        Returns:
            Decoders in file order

        Raises:
            DecoderDefinitionError: If parsing or validation fails
        """
        path = Path(path)
        if not path.exists():
            raise DecoderDefinitionError(f"File not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise DecoderDefinitionError(f"Invalid YAML syntax: {e}", str(path))

        return cls.parse(data, str(path))

    @classmethod
    def loads(cls, yaml_str: str, source: str = "<string>") -> List[PatternDecoder]:
        """Parse decoder definitions from a YAML string."""
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise DecoderDefinitionError(f"Invalid YAML syntax: {e}", source)

        return cls.parse(data, source)

    @classmethod
    def parse(cls, data: Any, source: str = "<dict>") -> List[PatternDecoder]:
        """
        Build decoders from already-parsed YAML data.

        Args:
            data: Mapping with a 'decoders' list and optional 'register' flag
            source: Source identifier for error messages
        """
        if data is None:
            raise DecoderDefinitionError("Empty decoder definition", source)
        if not isinstance(data, dict):
            raise DecoderDefinitionError("Top level must be a mapping", source)

        entries = data.get("decoders")
        if not isinstance(entries, list) or not entries:
            raise DecoderDefinitionError("'decoders' must be a non-empty list", source)

        decoders = [cls._parse_entry(entry, source, i) for i, entry in enumerate(entries)]

        if data.get("register", False):
            for decoder in decoders:
                register_decoder(decoder)
                logger.info(f"Registered decoder '{decoder.name}' from {source}")

        return decoders

    @staticmethod
    def _parse_entry(entry: Any, source: str, index: int) -> PatternDecoder:
        if not isinstance(entry, dict):
            raise DecoderDefinitionError("Decoder entry must be a mapping", source, index)

        name = entry.get("name")
        if not isinstance(name, str) or not _NAME_PATTERN.match(name):
            raise DecoderDefinitionError(
                f"Invalid decoder name: {name!r} (lowercase letters, digits, '_' or '-')",
                source,
                index,
            )

        account_pattern = entry.get("account_pattern")
        if not isinstance(account_pattern, str) or not account_pattern:
            raise DecoderDefinitionError("Missing 'account_pattern'", source, index)

        try:
            compiled = re.compile(account_pattern)
        except re.error as e:
            raise DecoderDefinitionError(f"Invalid account_pattern: {e}", source, index)
        if compiled.groups:
            # Group numbering of the track pattern depends on the account being one group
            raise DecoderDefinitionError(
                "account_pattern must not contain capturing groups; use (?:...)",
                source,
                index,
            )

        require_luhn = entry.get("luhn", True)
        if not isinstance(require_luhn, bool):
            raise DecoderDefinitionError("'luhn' must be true or false", source, index)

        return PatternDecoder(
            name=name,
            account_pattern=account_pattern,
            card_type=entry.get("type", name),
            require_luhn=require_luhn,
        )


def load_yaml_decoders(path: Union[str, Path], register: bool = False) -> List[PatternDecoder]:
    """
    Convenience wrapper: load a YAML file and optionally register its decoders.
    """
    decoders = YamlDecoderLoader.load(path)
    if register:
        for decoder in decoders:
            register_decoder(decoder)
    return decoders


__all__ = [
    "YamlDecoderLoader",
    "DecoderDefinitionError",
    "load_yaml_decoders",
]
