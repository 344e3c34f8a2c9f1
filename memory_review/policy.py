"""Interval policy configuration for the review scheduler."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from loguru import logger

POLICY_DIR = Path(__file__).resolve().parent / "res" / "policies"
DEFAULT_VERSION = "default"


@dataclass(frozen=True)
class IntervalPolicy:
    """Tunables of the step-function interval policy.

    The defaults reproduce the shipped ``default`` policy: Again resets to a
    single day, Hard/Good/Easy multiply the review count by 0.5/2/4, and the
    result is jittered by up to 10% either way.
    """

    version: str = DEFAULT_VERSION
    again_interval: int = 1
    hard_multiplier: float = 0.5
    good_multiplier: float = 2.0
    easy_multiplier: float = 4.0
    jitter_ratio: float = 0.1
    minimum_interval: int = 1
    maximum_interval: int = 36500

    def __post_init__(self) -> None:
        for name in ("hard_multiplier", "good_multiplier", "easy_multiplier"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if not 0.0 <= self.jitter_ratio < 1.0:
            raise ValueError("jitter_ratio must be in [0, 1)")
        if self.minimum_interval < 1:
            raise ValueError("minimum_interval must be at least one day")
        if self.again_interval < self.minimum_interval:
            raise ValueError("again_interval must not be below minimum_interval")
        if self.maximum_interval < self.minimum_interval:
            raise ValueError("maximum_interval must not be below minimum_interval")

    @property
    def jitter_bounds(self) -> Tuple[float, float]:
        return 1.0 - self.jitter_ratio, 1.0 + self.jitter_ratio


_POLICY_CACHE: Dict[str, IntervalPolicy] = {}


def _load_policy_file(path: Path) -> IntervalPolicy:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return IntervalPolicy(
        version=str(payload.get("version") or path.stem),
        again_interval=int(payload.get("again_interval", 1)),
        hard_multiplier=float(payload.get("hard_multiplier", 0.5)),
        good_multiplier=float(payload.get("good_multiplier", 2.0)),
        easy_multiplier=float(payload.get("easy_multiplier", 4.0)),
        jitter_ratio=float(payload.get("jitter_ratio", 0.1)),
        minimum_interval=int(payload.get("minimum_interval", 1)),
        maximum_interval=int(payload.get("maximum_interval", 36500)),
    )


def _iter_policy_files(directory: Path) -> Iterable[Path]:
    if not directory.exists():
        return []
    return sorted(directory.glob("*.json"))


def load_policy(version: Optional[str] = None, *, directory: Optional[Path] = None) -> IntervalPolicy:
    """Load the interval policy for *version* from disk.

    Policies found under the package's ``res/policies`` folder are cached by
    version; passing *directory* bypasses the cache.
    """

    wanted = version or DEFAULT_VERSION
    if directory is None and wanted in _POLICY_CACHE:
        return _POLICY_CACHE[wanted]

    root = Path(directory) if directory is not None else POLICY_DIR
    for path in _iter_policy_files(root):
        policy = _load_policy_file(path)
        if directory is None:
            _POLICY_CACHE[policy.version] = policy
        if policy.version == wanted:
            logger.debug(f"Loaded interval policy '{wanted}' from {path}")
            return policy
    raise FileNotFoundError(f"No interval policy '{wanted}' in {root}")


__all__ = [
    "DEFAULT_VERSION",
    "IntervalPolicy",
    "POLICY_DIR",
    "load_policy",
]
