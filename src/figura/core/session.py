from __future__ import annotations

import logging
import threading

from .choreography import expand, parse_script
from .codec import compile_keyframes, generate, parse
from .keyframes import CompiledClip, RecordedMotion, SampledBone
from .library import ClipLibrary
from .retarget import Retargeter, SkeletonBone, SkeletonDescriptor
from .settings import CompilerSettings


log = logging.getLogger(__name__)


def dsl_skeleton(root: str) -> SkeletonDescriptor:
    """Minimal descriptor for clips named with DSL bone names; only the root matters."""
    return SkeletonDescriptor(bones=(SkeletonBone(name=root, parent=None),))


class ChoreographySession:
    """State for one editor: the clip library, the active clip and its revision.

    `apply_script` is the compile/apply cycle. It replaces the active clip only
    when every stage succeeds; otherwise the previous clip stays active and the
    error propagates to the caller.
    """

    def __init__(
        self,
        settings: CompilerSettings | None = None,
        *,
        library: ClipLibrary | None = None,
        retargeter: Retargeter | None = None,
    ) -> None:
        self.settings = settings or CompilerSettings()
        self.library = library or ClipLibrary()
        self.retargeter = retargeter
        self.source_skeleton = dsl_skeleton(self.settings.root_bone)

        self._lock = threading.RLock()
        self._active: CompiledClip | None = None
        self._expanded: str | None = None
        self._revision = 0

    @property
    def active_clip(self) -> CompiledClip | None:
        with self._lock:
            return self._active

    @property
    def expanded_text(self) -> str | None:
        with self._lock:
            return self._expanded

    @property
    def revision(self) -> int:
        with self._lock:
            return int(self._revision)

    def load_motion(self, name: str, motion: RecordedMotion, interval: float | None = None) -> str:
        """Generate low-level text for a recorded motion and register it under `name`."""

        text = generate(motion, interval if interval is not None else self.settings.source_interval)
        self.library.register(name, parse(text))
        return text

    def register_text(self, name: str, text: str) -> None:
        self.library.register(name, parse(text))

    def missing_sources(self, script: str) -> list[str]:
        """Sources the script declares or slices from that are not registered yet."""

        choreo = parse_script(script, default_bpm=self.settings.default_bpm)
        wanted = list(choreo.sources) + [c.source for c in choreo.clips.values()]
        return [name for name in dict.fromkeys(wanted) if not self.library.has(name)]

    def expand_script(self, script: str) -> str:
        choreo = parse_script(script, default_bpm=self.settings.default_bpm)
        return expand(choreo, self.library, frame_time=self.settings.frame_time, root=self.settings.root_bone)

    def apply_script(self, script: str) -> CompiledClip:
        text = self.expand_script(script)
        clip = compile_keyframes(parse(text), reference_skeleton=self.source_skeleton)
        if self.retargeter is not None:
            clip = self.retargeter.retarget(self.source_skeleton, clip)

        with self._lock:
            self._active = clip
            self._expanded = text
            self._revision += 1
            revision = self._revision

        log.debug("Applied script revision %d (%d tracks, duration=%.4f)", revision, len(clip.tracks), clip.duration)
        return clip

    def sample(self, t: float) -> dict[str, SampledBone] | None:
        clip = self.active_clip
        if clip is None:
            return None
        return clip.sample(t)
