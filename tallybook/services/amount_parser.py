import re
from typing import Optional


class AmountParser:
    """
    Parser for amounts typed into a form field.

    Supports:
    - Suffixes: k (thousand), m/mil/million (million), b/bn/billion (billion)
    - Thousand separators: 52,500 = 52500, 1,234,567.89
    - Standard numbers: 1000, 500.50, -20
    - Mixed formats: 1.5k = 1500, 2.5m = 2500000

    Unlike free-text parsing, the whole input must be an amount, so
    "12 apples" is rejected rather than read as 12.
    """

    MULTIPLIERS = {
        "k": 1_000,
        "m": 1_000_000,
        "mil": 1_000_000,
        "million": 1_000_000,
        "b": 1_000_000_000,
        "bn": 1_000_000_000,
        "billion": 1_000_000_000,
    }

    AMOUNT_PATTERN = re.compile(
        r"""
        ^\s*
        (?P<sign>-)?
        (?P<number>
            \d{1,3}(?:,\d{3})+(?:\.\d+)?        # Numbers with thousand separators
            |
            \d+(?:\.\d+)?                       # Simple numbers with optional decimal
            |
            \.\d+                               # Bare decimal (.5)
        )
        \s*
        (?P<suffix>k|mil|million|m|bn|billion|b)?
        \s*$
        """,
        re.VERBOSE | re.IGNORECASE,
    )

    @classmethod
    def parse(cls, text: str) -> Optional[float]:
        """
        Parse an amount string and return the numeric value.

        Args:
            text: String holding only an amount (e.g., "16k", "52,500", "1.5m")

        Returns:
            Float value of the amount, or None if parsing fails
        """
        if not text:
            return None

        match = cls.AMOUNT_PATTERN.match(text)
        if not match:
            return None

        try:
            number = float(match.group("number").replace(",", ""))
        except ValueError:
            return None

        suffix = match.group("suffix")
        if suffix:
            number *= cls.MULTIPLIERS.get(suffix.lower(), 1)

        if match.group("sign"):
            number = -number

        return number
