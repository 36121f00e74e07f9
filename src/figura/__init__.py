from __future__ import annotations

from .core.choreography import expand, parse_script
from .core.codec import compile_keyframes, generate, parse
from .core.errors import RetargetMissingRootError, UnknownSourceError
from .core.library import ClipLibrary
from .core.retarget import Retargeter, retarget_animation
from .core.session import ChoreographySession
from .core.settings import CompilerSettings, load_settings
from .io.bvh import load_bvh
from .runtime.server import run
from .sdk.client import FiguraClient

__all__ = [
    "run",
    "FiguraClient",
    "ChoreographySession",
    "ClipLibrary",
    "CompilerSettings",
    "load_settings",
    "generate",
    "parse",
    "compile_keyframes",
    "parse_script",
    "expand",
    "Retargeter",
    "retarget_animation",
    "load_bvh",
    "UnknownSourceError",
    "RetargetMissingRootError",
]
