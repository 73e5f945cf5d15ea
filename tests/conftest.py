"""
lyricmap - Pytest Configuration & Shared Fixtures

Provides reusable lyric texts and keeps the activity log inside the
per-test temporary directory.
"""

from pathlib import Path

import pytest

from config import GroupingSettings

# ---------------------------------------------------------------------------
# Lyric samples
# ---------------------------------------------------------------------------

HEY_JUDE = "na na na na\nHey Jude\ndon't make it bad\ndon't be afraid"

CHORUS_THREE_TIMES = """[Intro]
Midnight train rolling out

[Verse 1]
Rain upon the window pane

[Chorus]
Hold me closer tonight
Never let the morning come

[Verse 2]
Streetlights flicker one by one

[Chorus]
Hold me closer tonight
Never let the morning come

[Verse 3]
Quiet rooms remember us

[Chorus]
Hold me closer tonight
Never let the morning come
"""


@pytest.fixture
def hey_jude() -> str:
    return HEY_JUDE


@pytest.fixture
def chorus_three_times() -> str:
    return CHORUS_THREE_TIMES


@pytest.fixture
def settings() -> GroupingSettings:
    return GroupingSettings()


@pytest.fixture(autouse=True)
def isolated_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the activity log at a temp file for every test."""
    log_path = tmp_path / "build.log"
    monkeypatch.setenv("LYRICMAP_LOG_PATH", str(log_path))
    return log_path
