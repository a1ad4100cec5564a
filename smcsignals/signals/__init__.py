"""
Trade signal synthesis
"""

from .synthesizer import synthesize_signal

__all__ = ["synthesize_signal"]
