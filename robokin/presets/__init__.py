"""Predefined arm configurations and ready-to-run demos."""

from .urt import LINK_LENGTHS, create_arm, urt_config
from .urt_demo import TeleopResult, UrtDemo

__all__ = [
    "LINK_LENGTHS",
    "create_arm",
    "urt_config",
    "UrtDemo",
    "TeleopResult",
]
