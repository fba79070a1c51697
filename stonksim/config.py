"""
Session configuration and presets.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from typing import Optional

DEFAULT_SNAPSHOT_PATH = Path.home() / ".stonksim" / "session.json"


@dataclass(frozen=True)
class SessionConfig:
    """Periods are in simulated seconds"""
    initial_cash: Decimal = Decimal('100000')
    price_tick_seconds: int = 2
    event_check_seconds: int = 15
    dividend_seconds: int = 90
    snapshot_seconds: int = 5
    speed_multiplier: float = 1.0
    snapshot_path: Optional[Path] = DEFAULT_SNAPSHOT_PATH
    seed: Optional[int] = None
    log_length: int = 21
    portfolio_history_length: int = 30
    price_history_length: int = 100


PRESETS = {
    'default': {},
    # Ten times faster, same cadence
    'fast': {'speed_multiplier': 10.0},
    # As fast as possible, nothing written to disk
    'headless': {'speed_multiplier': 0.0, 'snapshot_path': None},
}


def apply_config_preset(config: SessionConfig, preset: str) -> SessionConfig:
    """Overlay a named preset on a config"""
    if preset not in PRESETS:
        raise ValueError(f"Unknown preset: {preset}")
    return replace(config, **PRESETS[preset])
