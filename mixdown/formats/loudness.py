"""
Two-pass loudness normalization.

Pass 1 (measure): the engine analyzes the input against the targets and
reports integrated loudness, true peak, loudness range, gating threshold
and target offset.

Pass 2 (apply): the engine re-processes the input with the targets AND all
five measured values, producing the normalized output.

Verification: a measure pass of the same form, run on the output, gives
the final integrated loudness and true peak reported to the caller.

If pass 1 produces nothing parseable, pass 2 still runs, with
UNMEASURED_DEFAULTS as measured values. These are the engine's own
"not measured" defaults and make it fall back to single-pass dynamic
normalization. The report flags ``measurement_available=False`` so the
caller can tell that case apart from "already at target".
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from mixdown.config import LoudnessTargets

if TYPE_CHECKING:
    from mixdown.engine.base import AudioEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")

_JSON_BLOCK = re.compile(r"\{[^{}]*\}", re.S)

MEASUREMENT_KEYS = ("input_i", "input_tp", "input_lra", "input_thresh", "target_offset")


@dataclass(frozen=True)
class LoudnessMeasurement:
    """Pass-1 measurement. Transient; never persisted.

    Attributes:
        input_i: Measured integrated loudness (LUFS).
        input_tp: Measured true peak (dBTP).
        input_lra: Measured loudness range (LU).
        input_thresh: Measured gating threshold (LUFS).
        target_offset: Offset the engine suggests for pass 2 (LU).
        available: False when these are UNMEASURED_DEFAULTS.
    """
    input_i: float
    input_tp: float
    input_lra: float
    input_thresh: float
    target_offset: float
    available: bool = True

    def as_params(self) -> dict[str, float]:
        """Measured values as engine parameters."""
        return {
            "measured_I": self.input_i,
            "measured_TP": self.input_tp,
            "measured_LRA": self.input_lra,
            "measured_thresh": self.input_thresh,
            "offset": self.target_offset,
        }


UNMEASURED_DEFAULTS = LoudnessMeasurement(
    input_i=0.0,
    input_tp=99.0,
    input_lra=0.0,
    input_thresh=-70.0,
    target_offset=0.0,
    available=False,
)
"""Sentinel measured values used when pass 1 yields nothing parseable."""


@dataclass(frozen=True)
class NormalizationReport:
    """Outcome of a normalize run.

    ``final_lufs`` / ``final_true_peak_db`` come from the verification pass
    and are None when it could not be parsed.
    """
    output: str
    targets: LoudnessTargets
    measurement: LoudnessMeasurement
    final_lufs: float | None = None
    final_true_peak_db: float | None = None

    @property
    def measurement_available(self) -> bool:
        return self.measurement.available

    def meets_targets(self, tolerance: float = 1.0) -> bool:
        """Check the verified output against the targets."""
        if self.final_lufs is None or self.final_true_peak_db is None:
            return False
        lufs_ok = abs(self.final_lufs - self.targets.integrated_lufs) <= tolerance
        peak_ok = self.final_true_peak_db <= self.targets.true_peak_db
        return lufs_ok and peak_ok


def _to_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def parse_loudnorm_report(text: str) -> LoudnessMeasurement | None:
    """Extract a measurement from the engine's JSON loudness report.

    The report is the last JSON object in ``text``. Values may be quoted
    strings. Returns None when no complete measurement can be read.
    """
    for block in reversed(_JSON_BLOCK.findall(text or "")):
        try:
            data = json.loads(block)
        except json.JSONDecodeError:
            continue
        if not isinstance(data, dict):
            continue
        values = {key: _to_float(data.get(key)) for key in MEASUREMENT_KEYS}
        if any(v is None for v in values.values()):
            continue
        return LoudnessMeasurement(**values)
    return None


class LoudnessNormalizer:
    """Runs measure → apply → verify against an engine.

    Example:
        normalizer = LoudnessNormalizer(engine, LoudnessTargets(-16, -1, 11))
        report = await normalizer.normalize("mix.wav", "final.m4a")
        print(report.final_lufs, report.measurement_available)
    """

    def __init__(
        self,
        engine: AudioEngine,
        targets: LoudnessTargets | None = None,
        call: Callable[[str, Callable[[], Awaitable[Any]]], Awaitable[Any]] | None = None,
    ):
        """
        Args:
            engine: Audio engine port.
            targets: Loudness targets.
            call: Optional wrapper applied to every engine call, taking an
                operation name and a zero-argument coroutine factory. Used
                by the scene mixer to add timeouts and retries.
        """
        self.engine = engine
        self.targets = targets or LoudnessTargets()
        self._call = call

    async def _invoke(self, operation: str, factory: Callable[[], Awaitable[T]]) -> T:
        if self._call is None:
            return await factory()
        return await self._call(operation, factory)

    async def measure(self, path: str | Path) -> LoudnessMeasurement | None:
        """Pass 1 (or verification): measure ``path`` against the targets."""
        return await self._invoke(
            "measure_loudness",
            lambda: self.engine.measure_loudness(str(path), self.targets),
        )

    async def normalize(self, source: str | Path, output: str | Path) -> NormalizationReport:
        """Normalize ``source`` into ``output``.

        Pass 2 never starts before pass 1 completes.
        """
        measured = await self.measure(source)
        if measured is None:
            logger.warning(
                f"No loudness measurement for {source}; applying with unmeasured defaults"
            )
            measured = UNMEASURED_DEFAULTS
        else:
            logger.info(
                f"Measured {source}: {measured.input_i:.2f} LUFS, {measured.input_tp:.2f} dBTP"
            )

        await self._invoke(
            "normalize",
            lambda: self.engine.normalize(str(source), str(output), self.targets, measured),
        )

        verified = await self.measure(output)
        report = NormalizationReport(
            output=str(output),
            targets=self.targets,
            measurement=measured,
            final_lufs=verified.input_i if verified else None,
            final_true_peak_db=verified.input_tp if verified else None,
        )
        if verified is None:
            logger.warning(f"Could not verify loudness of {output}")
        else:
            logger.info(
                f"Normalized {output}: {verified.input_i:.2f} LUFS, {verified.input_tp:.2f} dBTP"
            )
        return report


__all__ = [
    "MEASUREMENT_KEYS",
    "LoudnessMeasurement",
    "UNMEASURED_DEFAULTS",
    "NormalizationReport",
    "parse_loudnorm_report",
    "LoudnessNormalizer",
]
