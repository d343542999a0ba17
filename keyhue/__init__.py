"""Keyhue package."""

from .analyser import SpectrumAnalyser
from .colors import OklchColor, dynamic_note_color, key_color, note_color
from .key_estimation import Key, KeyStatus, Mode
from .pitch import PitchClass, detect_pitch, frequency_to_note
from .session import AnalysisFrame, AnalysisResult, AnalysisSession, process, reset

__all__ = [
    "AnalysisFrame",
    "AnalysisResult",
    "AnalysisSession",
    "process",
    "reset",
    "SpectrumAnalyser",
    "OklchColor",
    "note_color",
    "dynamic_note_color",
    "key_color",
    "Key",
    "KeyStatus",
    "Mode",
    "PitchClass",
    "detect_pitch",
    "frequency_to_note",
]
