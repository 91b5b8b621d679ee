"""
FFmpeg Backend - Reference AudioEngine over ffmpeg/ffprobe subprocesses.

This backend lowers the typed MixGraph to filtergraph text and runs it with
``-filter_complex``. Loudness reports and RMS statistics are read from
ffmpeg's stderr and parsed into the package's own types.

Binaries are located through MIXDOWN_FFMPEG / MIXDOWN_FFPROBE, falling back
to ``ffmpeg`` / ``ffprobe`` on PATH.

Exit status handling:
    - Binary missing            -> PermanentEngineError
    - Non-zero exit              -> PermanentEngineError (stderr tail in details)
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING

from mixdown.errors import PermanentEngineError
from mixdown.formats.loudness import LoudnessMeasurement, parse_loudnorm_report
from mixdown.graph.filtergraph import crossfade_filtergraph, to_filtergraph
from mixdown.runtime.ducking import RMSSample, parse_rms_metadata

if TYPE_CHECKING:
    from mixdown.config import LoudnessTargets
    from mixdown.graph.types import MixGraph
    from mixdown.runtime.crossfade import CrossfadeRequest

logger = logging.getLogger(__name__)

SAMPLE_RATE = 48000
AAC_BITRATE = "192k"

# Characters of stderr kept on failure.
_STDERR_TAIL = 2000


def _num(value: float) -> str:
    return f"{float(value):g}"


def loudnorm_filter(targets: LoudnessTargets, measurement: LoudnessMeasurement | None = None) -> str:
    """``loudnorm`` expression for a measure pass (no measurement) or apply pass."""
    base = (
        f"loudnorm=I={_num(targets.integrated_lufs)}"
        f":TP={_num(targets.true_peak_db)}:LRA={_num(targets.lra)}"
    )
    if measurement is None:
        return f"{base}:print_format=json"
    params = ":".join(f"{key}={_num(value)}" for key, value in measurement.as_params().items())
    return f"{base}:{params}"


def rms_filter(hop: float) -> str:
    """Per-hop RMS: one frame of ``hop`` seconds per stats reset."""
    frame = max(1, int(round(hop * SAMPLE_RATE)))
    return (
        f"aresample={SAMPLE_RATE},asetnsamples=n={frame}:p=0,"
        "astats=metadata=1:reset=1,"
        "ametadata=print:key=lavfi.astats.Overall.RMS_level"
    )


class FFmpegEngine:
    """AudioEngine backed by local ffmpeg and ffprobe binaries.

    Example:
        engine = FFmpegEngine()
        samples = await engine.analyze_rms("dialogue.wav", 0.1)
    """

    def __init__(self, ffmpeg: str | None = None, ffprobe: str | None = None):
        self.ffmpeg = ffmpeg or os.environ.get("MIXDOWN_FFMPEG", "ffmpeg")
        self.ffprobe = ffprobe or os.environ.get("MIXDOWN_FFPROBE", "ffprobe")

    @property
    def name(self) -> str:
        return "ffmpeg"

    async def _run(self, binary: str, args: list[str], check: bool = True) -> tuple[int, str, str]:
        logger.debug(f"Running {binary} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise PermanentEngineError(
                f"{binary} not found. Install ffmpeg or set MIXDOWN_FFMPEG/MIXDOWN_FFPROBE",
                kind="engine_unavailable_binary",
                details={"binary": binary},
            ) from None

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # Timeouts cancel us; do not leave the child running.
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        if check and process.returncode != 0:
            raise PermanentEngineError(
                f"{os.path.basename(binary)} exited with status {process.returncode}",
                details={"returncode": process.returncode, "stderr": err[-_STDERR_TAIL:]},
            )
        return process.returncode, out, err

    async def analyze_rms(self, path: str, hop: float) -> list[RMSSample]:
        _, _, err = await self._run(self.ffmpeg, [
            "-hide_banner", "-nostats",
            "-i", path,
            "-af", rms_filter(hop),
            "-f", "null", "-",
        ])
        return parse_rms_metadata(err, hop)

    async def execute_graph(self, graph: MixGraph, output: str) -> None:
        args = ["-hide_banner", "-nostats", "-y"]
        for raw in graph.inputs:
            args += ["-i", raw.source]
        args += [
            "-filter_complex", to_filtergraph(graph),
            "-map", f"[{graph.output}]",
            "-c:a", "pcm_s16le",
            "-ar", str(SAMPLE_RATE),
            output,
        ]
        await self._run(self.ffmpeg, args)

    async def copy(self, source: str, output: str) -> None:
        await self._run(self.ffmpeg, [
            "-hide_banner", "-nostats", "-y",
            "-i", source,
            "-c:a", "pcm_s16le",
            "-ar", str(SAMPLE_RATE),
            output,
        ])

    async def measure_loudness(
        self, path: str, targets: LoudnessTargets
    ) -> LoudnessMeasurement | None:
        # The report is printed even when ffmpeg exits non-zero at end of stream.
        _, out, err = await self._run(self.ffmpeg, [
            "-hide_banner", "-nostats",
            "-i", path,
            "-af", loudnorm_filter(targets),
            "-f", "null", "-",
        ], check=False)
        return parse_loudnorm_report(err or out)

    async def normalize(
        self,
        source: str,
        output: str,
        targets: LoudnessTargets,
        measurement: LoudnessMeasurement,
    ) -> None:
        await self._run(self.ffmpeg, [
            "-hide_banner", "-nostats", "-y",
            "-i", source,
            "-af", loudnorm_filter(targets, measurement),
            "-ar", str(SAMPLE_RATE),
            "-c:a", "aac",
            "-b:a", AAC_BITRATE,
            output,
        ])

    async def crossfade_combine(self, request: CrossfadeRequest) -> None:
        args = ["-hide_banner", "-nostats", "-y"]
        for source in request.sources:
            args += ["-i", source]
        args += [
            "-filter_complex",
            crossfade_filtergraph(len(request.sources), request.duration, request.curve),
            "-map", "[out]",
            "-c:a", "aac",
            "-b:a", AAC_BITRATE,
            "-ar", str(SAMPLE_RATE),
            request.output,
        ]
        await self._run(self.ffmpeg, args)

    async def probe_duration(self, path: str) -> float:
        _, out, _ = await self._run(self.ffprobe, [
            "-v", "error",
            "-select_streams", "a:0",
            "-show_entries", "format=duration",
            "-of", "default=nw=1:nk=1",
            path,
        ])
        try:
            return float(out.strip())
        except ValueError:
            raise PermanentEngineError(
                f"No duration reported for {path}",
                details={"path": path, "output": out.strip()},
            ) from None


__all__ = ["FFmpegEngine", "loudnorm_filter", "rms_filter", "SAMPLE_RATE"]
