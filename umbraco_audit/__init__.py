"""Umbraco upgrade effort auditor."""

__version__ = "0.1.0"
