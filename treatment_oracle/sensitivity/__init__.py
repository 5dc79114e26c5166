"""
Sensitivity analysis module.

Perturbs uncertain factors one at a time to find the ones that can
change the recommendation.
"""

from treatment_oracle.sensitivity.analyzer import SensitivityAnalyzer

__all__ = ["SensitivityAnalyzer"]
