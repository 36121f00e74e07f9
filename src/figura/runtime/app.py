from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI

from ..api import create_api_app
from ..core.session import ChoreographySession
from ..core.settings import CompilerSettings
from ..io.bvh import load_bvh


log = logging.getLogger(__name__)


def register_sources_dir(session: ChoreographySession, directory: str | Path) -> list[str]:
    """Register every `*.bvh` in `directory` under its file stem."""

    names: list[str] = []
    for path in sorted(Path(directory).glob("*.bvh")):
        data = load_bvh(path)
        session.load_motion(path.stem, data.motion)
        names.append(path.stem)
    log.info("Registered %d source(s) from %s", len(names), directory)
    return names


def create_app(settings: CompilerSettings | None = None, session: ChoreographySession | None = None) -> FastAPI:
    """Create the API app, pre-loading sources from `settings.sources_dir` when set."""

    if session is None:
        session = ChoreographySession(settings)
    if session.settings.sources_dir is not None:
        register_sources_dir(session, session.settings.sources_dir)
    return create_api_app(session)
