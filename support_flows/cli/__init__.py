"""Command-line interface for inspecting and validating flows."""

from .main import cli

__all__ = ["cli"]
