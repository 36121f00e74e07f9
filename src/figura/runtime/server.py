from __future__ import annotations

import contextlib
import socket
import threading
import time
from dataclasses import dataclass

import uvicorn

from ..core.session import ChoreographySession
from ..core.settings import CompilerSettings
from .app import create_app


@dataclass(frozen=True)
class FiguraServer:
    host: str
    port: int
    url: str
    session: ChoreographySession


def _find_free_port(host: str) -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind((host, 0))
        return int(s.getsockname()[1])


def run(
    *,
    host: str = "127.0.0.1",
    port: int = 0,
    settings: CompilerSettings | None = None,
    session: ChoreographySession | None = None,
    log_level: str = "info",
    access_log: bool = False,
) -> FiguraServer:
    """Serve the compile API with uvicorn on a background daemon thread.

    `port=0` picks a free port.
    """

    if session is None:
        session = ChoreographySession(settings)
    if port == 0:
        port = _find_free_port(host)

    app = create_app(session=session)

    config = uvicorn.Config(app, host=host, port=port, log_level=log_level, access_log=access_log)
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    # Give it a moment so an immediate client call doesn't race with startup.
    time.sleep(0.05)

    return FiguraServer(host=host, port=port, url=f"http://{host}:{port}/", session=session)
