"""Differential check of SonarQube Java auto-scan results against a full analysis."""

__version__ = "0.1.0"
