"""
Engine backends.
"""

from mixdown.engine.backends.ffmpeg import FFmpegEngine

__all__ = ["FFmpegEngine"]
