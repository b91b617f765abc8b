"""Silence provisioning and lossless assembly components."""

from .assembler import BookAssembler, ChapterAssembler, ConcatRunner
from .silence import SilenceLibrary

__all__ = [
    "BookAssembler",
    "ChapterAssembler",
    "ConcatRunner",
    "SilenceLibrary",
]
