"""cogwork-cli: Command-line interface for cogwork asset pipelines."""

from __future__ import annotations

__version__ = "0.1.0"
