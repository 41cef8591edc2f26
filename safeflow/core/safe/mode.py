"""
Run-mode detection.

Detectors are tried in a fixed order. The native detector asks the host
environment whether this is a dry run; when the host cannot answer, the env
override (``DRY_RUN``) decides and a ``mode_override`` event is logged. If no
detector can answer the run is misconfigured.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

import structlog

from ...config import Settings, settings as default_settings
from ..errors import ConfigurationError
from .models import ExecutionMode

logger = structlog.stdlib.get_logger(__name__)


class ModeUnavailable(Exception):
    """A detector cannot determine the mode in this environment."""
    pass


class ModeDetector(ABC):
    name: str

    @abstractmethod
    def detect(self) -> ExecutionMode:
        """Return the mode or raise ModeUnavailable."""
        pass


class NativeDetector(ModeDetector):
    """Asks the host through a boolean ``is_dry_run`` probe."""

    name = "native"

    def __init__(self, probe: Optional[Callable[[], bool]] = None):
        self._probe = probe

    def detect(self) -> ExecutionMode:
        if self._probe is None:
            raise ModeUnavailable("host does not expose a dry-run flag")
        try:
            dry_run = self._probe()
        except NotImplementedError as exc:
            raise ModeUnavailable(str(exc)) from exc
        return ExecutionMode.SIMULATION if dry_run else ExecutionMode.PROPOSAL


class EnvOverrideDetector(ModeDetector):
    name = "env_override"

    def __init__(self, config: Optional[Settings] = None):
        self._config = config or default_settings

    def detect(self) -> ExecutionMode:
        if self._config.dry_run is None:
            raise ModeUnavailable("DRY_RUN is not set")
        mode = ExecutionMode.SIMULATION if self._config.dry_run else ExecutionMode.PROPOSAL
        logger.warning("mode_override", source="DRY_RUN", mode=mode.value)
        return mode


class ModeResolver:
    """Resolves the mode once and caches it for the rest of the run."""

    def __init__(self, detectors: Optional[Sequence[ModeDetector]] = None):
        self._detectors = list(detectors) if detectors is not None else [
            NativeDetector(),
            EnvOverrideDetector(),
        ]
        self._mode: Optional[ExecutionMode] = None

    @classmethod
    def fixed(cls, mode: ExecutionMode) -> "ModeResolver":
        resolver = cls(detectors=[])
        resolver._mode = mode
        return resolver

    def resolve(self) -> ExecutionMode:
        if self._mode is not None:
            return self._mode
        unavailable = []
        for detector in self._detectors:
            try:
                self._mode = detector.detect()
            except ModeUnavailable as exc:
                unavailable.append(f"{detector.name}: {exc}")
                continue
            logger.info("mode_resolved", detector=detector.name, mode=self._mode.value)
            return self._mode
        raise ConfigurationError(
            "Could not determine run mode; set DRY_RUN=true or DRY_RUN=false",
            {"detectors": unavailable},
        )
