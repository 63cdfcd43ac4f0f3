"""
Playback settings: speech rate, pitch, volume and voice.

Values outside the supported ranges are clamped to the nearest bound.
A change only affects utterances built after it.
"""

import math
from dataclasses import dataclass, fields, replace
from typing import Optional, Tuple

# Rate uses the slider scale of the reader UI; 0.5 is normal speed.
RATE_RANGE: Tuple[float, float] = (0.1, 1.0)
PITCH_RANGE: Tuple[float, float] = (0.5, 2.0)
VOLUME_RANGE: Tuple[float, float] = (0.0, 1.0)

DEFAULT_RATE = 0.5
DEFAULT_PITCH = 1.0
DEFAULT_VOLUME = 1.0

_BOUNDS = {
    "rate": RATE_RANGE,
    "pitch": PITCH_RANGE,
    "volume": VOLUME_RANGE,
}

# Speed multipliers at the bottom, middle and top of the rate scale
_MIN_SPEED = 0.5
_MAX_SPEED = 2.0


def rate_to_speed_factor(rate: float) -> float:
    """
    Map a 0.1–1.0 rate to a synthesis speed multiplier.

    Piecewise linear: 0.1 → 0.5x, 0.5 → 1.0x, 1.0 → 2.0x.
    """
    low, high = RATE_RANGE
    rate = max(low, min(high, rate))
    if rate <= DEFAULT_RATE:
        return _MIN_SPEED + (rate - low) / (DEFAULT_RATE - low) * (1.0 - _MIN_SPEED)
    return 1.0 + (rate - DEFAULT_RATE) / (high - DEFAULT_RATE) * (_MAX_SPEED - 1.0)


def _clamp(name: str, value) -> float:
    value = float(value)
    if math.isnan(value):
        raise ValueError(f"{name} must be a number, got NaN")
    low, high = _BOUNDS[name]
    return max(low, min(high, value))


@dataclass
class PlaybackConfig:
    """
    User-adjustable speech settings shared by every narration session.

    Attributes:
        rate:     Speech rate on a 0.1–1.0 scale (0.5 = normal speed).
        pitch:    Pitch multiplier, 0.5–2.0.
        volume:   Output volume, 0.0–1.0.
        voice_id: Manually chosen voice, or ``None`` for automatic selection.
    """

    rate: float = DEFAULT_RATE
    pitch: float = DEFAULT_PITCH
    volume: float = DEFAULT_VOLUME
    voice_id: Optional[str] = None

    def __setattr__(self, name, value):
        if name in _BOUNDS:
            value = _clamp(name, value)
        super().__setattr__(name, value)

    def update(self, **changes) -> "PlaybackConfig":
        """
        Apply several settings at once.

        Either every change applies or none does.

        Raises:
            ValueError: If a key is not a playback setting or a value is NaN.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown playback setting(s): {sorted(unknown)}")
        checked = {
            name: _clamp(name, value) if name in _BOUNDS else value
            for name, value in changes.items()
        }
        for name, value in checked.items():
            setattr(self, name, value)
        return self

    def snapshot(self) -> "PlaybackConfig":
        """Return an independent copy of the current settings."""
        return replace(self)

    @property
    def speed_factor(self) -> float:
        """Synthesis speed multiplier for the current rate."""
        return rate_to_speed_factor(self.rate)
