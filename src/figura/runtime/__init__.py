from __future__ import annotations

from .app import create_app, register_sources_dir
from .server import FiguraServer, run

__all__ = ["create_app", "register_sources_dir", "FiguraServer", "run"]
