"""Dojo: a team server address exchange with live health polling."""

__version__ = '0.1.0'
