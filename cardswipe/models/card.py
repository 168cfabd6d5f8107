"""
Card record models produced by the stripe decoders.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Union


class CardType(Enum):
    """Identifies which built-in decoder produced a record."""
    GENERIC = "generic"
    VISA = "visa"
    MASTERCARD = "mastercard"
    DISCOVER = "discover"
    AMEX = "amex"


@dataclass(frozen=True)
class CardRecord:
    """
    Base class for decoded card data.

    card_type is a CardType for the built-in decoders, or the decoder name
    for caller-supplied decoders.
    """
    card_type: Union[CardType, str]

    @property
    def type_name(self) -> str:
        """Get the discriminant as a plain string."""
        if isinstance(self.card_type, CardType):
            return self.card_type.value
        return self.card_type

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["card_type"] = self.type_name
        return data


@dataclass(frozen=True)
class GenericCardRecord(CardRecord):
    """Raw track lines with their framing characters removed."""
    card_type: Union[CardType, str] = CardType.GENERIC
    line1: str = ""
    line2: str = ""
    line3: str = ""


@dataclass(frozen=True)
class IssuerCardRecord(CardRecord):
    """Fields parsed from a track 1 format B record."""
    account: str = ""
    last_name: str = ""
    first_name: str = ""
    honorific: str = ""
    exp_year: str = ""   # Two digits, e.g. "18"
    exp_month: str = ""  # Two digits, e.g. "05"

    @property
    def masked_account(self) -> str:
        """Account number with all but the last four digits hidden."""
        return "*" * max(0, len(self.account) - 4) + self.account[-4:]

    @property
    def expiry(self) -> str:
        """Expiry formatted as MM/YY."""
        return f"{self.exp_month}/{self.exp_year}"

    @property
    def full_name(self) -> str:
        parts = [self.honorific, self.first_name, self.last_name]
        return " ".join(p for p in parts if p)
