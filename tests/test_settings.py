from __future__ import annotations

from pathlib import Path

import pytest

from figura.core.settings import CompilerSettings, load_settings


def test_defaults_when_environment_is_empty() -> None:
    s = load_settings({})
    assert s == CompilerSettings()
    assert s.frame_time == pytest.approx(1.0 / 30.0)
    assert s.default_bpm == 120.0
    assert s.root_bone == "hip"
    assert s.sources_dir is None


def test_reads_figura_variables(tmp_path: Path) -> None:
    s = load_settings(
        {
            "FIGURA_FRAME_TIME": "0.04",
            "FIGURA_SOURCE_INTERVAL": "0.1",
            "FIGURA_ROOT_BONE": " pelvis ",
            "FIGURA_SOURCES_DIR": str(tmp_path),
        }
    )
    assert s.frame_time == 0.04
    assert s.source_interval == 0.1
    assert s.root_bone == "pelvis"
    assert s.sources_dir == tmp_path


def test_native_source_interval() -> None:
    assert load_settings({"FIGURA_SOURCE_INTERVAL": "native"}).source_interval is None


@pytest.mark.parametrize(
    "env",
    [
        {"FIGURA_FRAME_TIME": "fast"},
        {"FIGURA_FRAME_TIME": "0"},
        {"FIGURA_FRAME_TIME": "-0.1"},
        {"FIGURA_FRAME_TIME": "inf"},
        {"FIGURA_SOURCE_INTERVAL": "nan"},
        {"FIGURA_ROOT_BONE": "two words"},
        {"FIGURA_ROOT_BONE": "   "},
        {"FIGURA_SOURCES_DIR": "/definitely/not/here"},
    ],
)
def test_invalid_values_raise(env: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        load_settings(env)
