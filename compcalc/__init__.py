"""Comp Calc - Multi-year total compensation projections."""

__version__ = "0.3.0"
