from __future__ import annotations

import logging
import threading

from .errors import UnknownSourceError
from .keyframes import Keyframe, KeyframeSet


log = logging.getLogger(__name__)

# Slack applied to both ends of an extract window.
EXTRACT_EPSILON = 1e-6


class ClipLibrary:
    """Named recorded motions (as parsed low-level keyframes) that clips slice from.

    Registration is last-writer-wins. Stored `KeyframeSet`s are immutable, so a
    reader racing a `register` sees either the old or the new motion.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sources: dict[str, KeyframeSet] = {}

    def _require_locked(self, name: str) -> KeyframeSet:
        parsed = self._sources.get(name)
        if parsed is None:
            raise UnknownSourceError(name)
        return parsed

    def register(self, name: str, parsed: KeyframeSet) -> None:
        with self._lock:
            replaced = name in self._sources
            self._sources[name] = parsed
        log.debug(
            "%s source %r (%d keyframes, duration=%.4f)",
            "Replaced" if replaced else "Registered",
            name,
            len(parsed.keyframes),
            parsed.duration,
        )

    def get(self, name: str) -> KeyframeSet:
        with self._lock:
            return self._require_locked(name)

    def extract(self, name: str, start: float, end: float) -> KeyframeSet:
        """Keyframes with `start - eps <= time <= end + eps`, rebased so `start` is 0.

        A window that misses the source entirely yields no keyframes.
        """

        with self._lock:
            parsed = self._require_locked(name)

        start_v = float(start)
        end_v = float(end)
        keyframes = tuple(
            Keyframe(time=kf.time - start_v, bones=kf.bones)
            for kf in parsed.keyframes
            if start_v - EXTRACT_EPSILON <= kf.time <= end_v + EXTRACT_EPSILON
        )
        log.debug("Extracted %d keyframes from %r [%.4f, %.4f]", len(keyframes), name, start_v, end_v)
        return KeyframeSet(duration=end_v - start_v, keyframes=keyframes)

    def duration(self, name: str) -> float:
        with self._lock:
            return float(self._require_locked(name).duration)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._sources

    def sources(self) -> list[str]:
        with self._lock:
            return list(self._sources)

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._sources.pop(name, None) is not None
