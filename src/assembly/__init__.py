"""Clip caching and final-film assembly."""

from assembly.clip_assembler import ClipAssembler, assembly_workspace
from assembly.transcoder import FFmpegTranscoder, TranscodeResult, Transcoder

__all__ = [
    "ClipAssembler",
    "assembly_workspace",
    "FFmpegTranscoder",
    "TranscodeResult",
    "Transcoder",
]
