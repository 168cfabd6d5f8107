"""
Luhn checksum for card account numbers.
"""

# Digit sum of each digit doubled: 0->0, 1->2, ... 5->1+0, ... 9->1+8
_DOUBLED_DIGIT_SUM = (0, 2, 4, 6, 8, 1, 3, 5, 7, 9)


def luhn_checksum(digits: str) -> bool:
    """
    Validate a string of decimal digits with the Luhn algorithm.

    Digits are walked right to left. Odd positions (1st, 3rd, ...) count
    as-is, even positions count as the digit sum of the doubled digit.
    The number is valid when the total is a non-zero multiple of ten, so
    an all-zero string does not validate.

    Args:
        digits: Decimal digits only; the caller guarantees the format

    Returns:
        True if the checksum holds
    """
    total = 0
    for position, ch in enumerate(reversed(digits)):
        value = ord(ch) - ord("0")
        if position % 2 == 1:
            value = _DOUBLED_DIGIT_SUM[value]
        total += value
    return total > 0 and total % 10 == 0


__all__ = ["luhn_checksum"]
