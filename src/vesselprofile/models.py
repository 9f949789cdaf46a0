"""
Pydantic data models for vessel profile extraction results.

Everything handed back to the illustration editor flows through these
validated models; coordinates are normalized to the unit square.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Polarity(str, Enum):
    """Which intensity class is treated as the vessel."""
    AUTO = "auto"
    DARK = "dark"
    LIGHT = "light"

    @classmethod
    def from_invert(cls, invert: Optional[bool]) -> "Polarity":
        """Map the nullable invert flag (True = dark foreground) to a polarity."""
        if invert is None:
            return cls.AUTO
        return cls.DARK if invert else cls.LIGHT


class DecorationType(str, Enum):
    """Surface decoration patterns an illustration band can carry."""
    SMOOTH = "smooth"
    ZIGZAG = "zigzag"
    VERTICAL_HATCH = "verticalHatch"
    HORIZONTAL_HATCH = "horizontalHatch"
    DIAGONAL_HATCH = "diagonalHatch"
    CROSS_HATCH = "crossHatch"
    STIPPLING = "stippling"
    CIRCULAR_IMPRESSIONS = "circularImpressions"


class ProfilePoint(BaseModel):
    """One normalized (radius, height) sample of the vessel outline."""
    x: float = Field(..., ge=0.0, le=1.0)  # 0 = centerline, 1 = widest point
    y: float = Field(..., ge=0.0, le=1.0)  # 0 = base, 1 = rim

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class DecorationBand(BaseModel):
    """Normalized vertical band (base to rim) where a decoration applies."""
    type: DecorationType = DecorationType.SMOOTH
    from_y: float = Field(..., ge=0.0, le=1.0)
    to_y: float = Field(..., ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class ExtractResult(BaseModel):
    """
    Output of one photo-to-profile extraction.

    An empty profile means no vessel could be detected.
    decoration_bands is reserved and always empty for now. JSON output
    uses the camelCase keys of the illustration editor (decorationBands,
    fromY, toY).
    """
    profile: List[ProfilePoint] = Field(default_factory=list)
    decoration_bands: List[DecorationBand] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def empty(cls):
        """The "no profile detected" result."""
        return cls()

    @property
    def is_empty(self):
        return not self.profile

    def as_pairs(self):
        """Profile as a list of (x, y) tuples, base first."""
        return [(p.x, p.y) for p in self.profile]
