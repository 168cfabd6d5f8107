"""
Stripe decoders built from regular expressions.

The generic decoder splits raw text into its track lines. PatternDecoder
parses a track 1 format B record ("%B<account>^<LAST>/<FIRST>^<YYMM>...")
for one account-number family, and backs the built-in issuer decoders as
well as decoders defined in YAML.
"""

import re
from typing import Optional, Pattern, Union

from ..models.card import CardType, GenericCardRecord, IssuerCardRecord
from ..models.scan import LINE1_START, LINE2_START, LINE3_START, LINE_END
from .luhn import luhn_checksum


# Line 1 is %...?, line 2 is ;...?, line 3 is ;...? or +...?
_L1, _L2, _L3, _END = (re.escape(c) for c in (LINE1_START, LINE2_START, LINE3_START, LINE_END))
_NUMERIC = "[0-9:<>=]+"

GENERIC_PATTERN = re.compile(
    f"^({_L1}[^{_L1}{_L2}{_END}]+{_END})?"
    f"({_L2}{_NUMERIC}{_END})?"
    f"([{_L3}{_L2}]{_NUMERIC}{_END})?"
)

# Groups after the account: last name, first name, honorific, year, month
_NAME_EXPIRY_PATTERN = r"\^([A-Z ]+)/([A-Z ]+)(\.[A-Z ]+)?\^([0-9]{2})([0-9]{2})"

VISA_ACCOUNT = r"4[0-9]{12,18}"
# 51-55 and 2221-2720
MASTERCARD_ACCOUNT = (
    r"(?:5[1-5][0-9]{2}|222[1-9]|22[3-9][0-9]|2[3-6][0-9]{2}|27[01][0-9]|2720)[0-9]{12}"
)
DISCOVER_ACCOUNT = r"6(?:011|5[0-9]{2})[0-9]{12,15}"
AMEX_ACCOUNT = r"3[47][0-9]{13}"


def _strip_line(segment: Optional[str]) -> str:
    """Drop the start sentinel and trailing '?' from a captured line."""
    if not segment:
        return ""
    return segment[1:-1]


def decode_generic(raw: str) -> Optional[GenericCardRecord]:
    """
    Split raw scan text into up to three track lines.

    Missing lines come back empty; the pattern is fully optional, so
    this only declines when the regex engine cannot match at all.
    """
    match = GENERIC_PATTERN.match(raw)
    if not match:
        return None

    return GenericCardRecord(
        line1=_strip_line(match.group(1)),
        line2=_strip_line(match.group(2)),
        line3=_strip_line(match.group(3)),
    )


def build_track1_pattern(account_pattern: str) -> Pattern[str]:
    """Compile the full track 1 format B pattern around an account regex."""
    return re.compile(rf"^%B({account_pattern}){_NAME_EXPIRY_PATTERN}")


class PatternDecoder:
    """
    Decoder for one account-number family on a track 1 format B record.

    Declines when the pattern does not match or, if require_luhn is set,
    when the account number fails the checksum.
    """

    def __init__(
        self,
        name: str,
        account_pattern: str,
        card_type: Union[CardType, str, None] = None,
        require_luhn: bool = True,
    ):
        self.name = name
        self.account_pattern = account_pattern
        self.card_type = card_type if card_type is not None else name
        self.require_luhn = require_luhn
        self._pattern = build_track1_pattern(account_pattern)

    def decode(self, raw: str) -> Optional[IssuerCardRecord]:
        match = self._pattern.match(raw)
        if not match:
            return None

        account = match.group(1)
        if self.require_luhn and not luhn_checksum(account):
            return None

        honorific = match.group(4) or ""
        return IssuerCardRecord(
            card_type=self.card_type,
            account=account,
            last_name=match.group(2).strip(),
            first_name=match.group(3).strip(),
            honorific=honorific[1:].strip(),
            exp_year=match.group(5),
            exp_month=match.group(6),
        )

    def __repr__(self) -> str:
        return f"PatternDecoder(name={self.name!r}, account_pattern={self.account_pattern!r})"


VISA_DECODER = PatternDecoder("visa", VISA_ACCOUNT, CardType.VISA)
MASTERCARD_DECODER = PatternDecoder("mastercard", MASTERCARD_ACCOUNT, CardType.MASTERCARD)
DISCOVER_DECODER = PatternDecoder("discover", DISCOVER_ACCOUNT, CardType.DISCOVER)
AMEX_DECODER = PatternDecoder("amex", AMEX_ACCOUNT, CardType.AMEX)


__all__ = [
    "GENERIC_PATTERN",
    "PatternDecoder",
    "build_track1_pattern",
    "decode_generic",
    "VISA_DECODER",
    "MASTERCARD_DECODER",
    "DISCOVER_DECODER",
    "AMEX_DECODER",
]
