"""
Shared value objects.

Immutable, validated domain primitives.
Following DDD value object pattern.
"""

from __future__ import annotations

import re
import uuid

from pydantic import BaseModel, ConfigDict, Field

from scanlyf.domain.shared.errors import ValidationError

BARCODE_PATTERN = re.compile(r"[0-9]{8,13}")


class Barcode(BaseModel):
    """
    Product barcode value object.

    Validates barcode format (8-13 ASCII digits, no surrounding whitespace).
    Used as the cache fingerprint for product lookups.

    Example:
        >>> barcode = Barcode.parse("3017620422003")
        >>> barcode.cache_key
        'barcode:3017620422003'
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., pattern=r"^[0-9]{8,13}$", description="Barcode digits")

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash(self.value)

    @property
    def cache_key(self) -> str:
        """Canonical cache fingerprint."""
        return f"barcode:{self.value}"

    @staticmethod
    def is_valid(raw: str) -> bool:
        """Check raw string is exactly 8-13 ASCII digits."""
        return BARCODE_PATTERN.fullmatch(raw) is not None

    @classmethod
    def parse(cls, raw: object) -> Barcode:
        """
        Build barcode from untrusted input.

        Raises:
            ValidationError: If input is not 8-13 ASCII digits
        """
        if not isinstance(raw, str) or not cls.is_valid(raw):
            raise ValidationError(f"Invalid barcode format: {raw!r}")
        return cls(value=raw)


class AnalysisId(BaseModel):
    """
    Analysis ID value object.

    Identifies pending analyses awaiting confirmation.
    Format: "analysis_<12_hex_chars>"

    Example:
        >>> analysis_id = AnalysisId.generate()
        >>> assert analysis_id.value.startswith("analysis_")
        >>> assert len(analysis_id.value) == 21
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(
        ...,
        pattern=r"^analysis_[a-f0-9]{12}$",
        description="Analysis identifier",
    )

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash(self.value)

    @classmethod
    def generate(cls) -> AnalysisId:
        """Generate new analysis ID."""
        return cls(value=f"analysis_{uuid.uuid4().hex[:12]}")
