from __future__ import annotations

from .client import FiguraClient

__all__ = ["FiguraClient"]
