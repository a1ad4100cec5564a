"""
Bias and confluence scoring
"""

from .bias import score_bias
from .confluence import CreditFractions, score_confluence

__all__ = [
    "score_bias",
    "score_confluence",
    "CreditFractions",
]
