from enum import Enum
from typing import Optional

INSTANT_LABEL = "instant"


class TimeBand(str, Enum):
    """Coarse pickup window chosen at hold time. Values are the exact wire strings."""
    ELEVEN_AM = "11:00am - 12:00pm"
    TWELVE_PM = "12:00pm - 01:00pm"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> Optional["TimeBand"]:
        """Maps a wire string to a band; anything unrecognised (or None) maps to None."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    @classmethod
    def is_valid_wire(cls, value: Optional[str]) -> bool:
        return value is None or cls.from_wire(value) is not None


def band_label(band: Optional[TimeBand]) -> str:
    """Human readable label; orders without a band are delivered instantly."""
    return band.value if band is not None else INSTANT_LABEL
