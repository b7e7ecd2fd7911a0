"""Comp Calc CLI."""
