import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

DEFAULT_MARKERS: Tuple[str, ...] = (
    "na",
    "la",
    "oh",
    "yeah",
    "woah",
    "hey",
    "uh",
    "woo",
    "ha",
    "mm",
)
DEFAULT_STEM_LENGTHS: Tuple[int, ...] = (3, 2, 1)
DEFAULT_BLOCK_MIN = 2
DEFAULT_BLOCK_MAX = 6
DEFAULT_MAX_DEPTH = 32
DEFAULT_LOG_PATH = "build.log"
DEFAULT_LEVEL_LIMIT = 2


def _env_list(name: str) -> Optional[list[str]]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class GroupingSettings:
    """Knobs for one tree build.

    Stems are tried at 3, 2 and then 1 word; the one-word pass is what
    groups "don't make it bad" / "don't be afraid" under "don't". Set
    ``LYRICMAP_STEM_LENGTHS=3,2`` for the stricter two-length search.
    """

    markers: Tuple[str, ...] = DEFAULT_MARKERS
    stem_lengths: Tuple[int, ...] = DEFAULT_STEM_LENGTHS
    block_min: int = DEFAULT_BLOCK_MIN
    block_max: int = DEFAULT_BLOCK_MAX
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self) -> None:
        if any(length < 1 for length in self.stem_lengths):
            raise ValueError("stem lengths must be positive")
        if self.block_min < 2 or self.block_max < self.block_min:
            raise ValueError(
                f"block lengths must satisfy 2 <= min <= max, got {self.block_min}..{self.block_max}"
            )
        if self.max_depth < 0:
            raise ValueError("max_depth must not be negative")

    @classmethod
    def from_env(cls) -> "GroupingSettings":
        markers = _env_list("LYRICMAP_MARKERS")
        stem_lengths = _env_list("LYRICMAP_STEM_LENGTHS")
        try:
            lengths = tuple(sorted({int(value) for value in stem_lengths}, reverse=True)) if stem_lengths else None
        except ValueError:
            raise ValueError(
                f"LYRICMAP_STEM_LENGTHS must be a comma separated list of integers, got {os.getenv('LYRICMAP_STEM_LENGTHS')!r}"
            ) from None
        return cls(
            markers=tuple(marker.lower() for marker in markers) if markers else DEFAULT_MARKERS,
            stem_lengths=lengths or DEFAULT_STEM_LENGTHS,
            block_min=_env_int("LYRICMAP_BLOCK_MIN", DEFAULT_BLOCK_MIN),
            block_max=_env_int("LYRICMAP_BLOCK_MAX", DEFAULT_BLOCK_MAX),
            max_depth=_env_int("LYRICMAP_MAX_DEPTH", DEFAULT_MAX_DEPTH),
        )


def get_log_path() -> Path:
    return Path(os.getenv("LYRICMAP_LOG_PATH", DEFAULT_LOG_PATH))


def get_level_limit() -> int:
    return _env_int("LYRICMAP_LEVEL_LIMIT", DEFAULT_LEVEL_LIMIT)
