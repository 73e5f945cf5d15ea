import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

import regex

from config import DEFAULT_MARKERS, GroupingSettings
from node_models import Discourse, Group, Lyric, MindmapNode

FALLBACK_TITLE = "Song"
EMPTY_SUFFIX = "(...)"

_NON_WORD_PATTERN = regex.compile(r"[^\p{L}\p{N}' ]+")
_LINE_BREAK_PATTERN = re.compile(r"\r?\n")
_BRACKET_TAG_PATTERN = re.compile(r"^\[.*\]$")

ClassifiedLine = Union[Lyric, Discourse]


@dataclass(frozen=True)
class DiscourseMatch:
    marker: str
    count: int


@dataclass(frozen=True)
class RepeatedBlock:
    start: int
    length: int
    # Ascending start positions; the first one is the canonical location.
    occurrences: Tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.occurrences)


def normalize_line(line: str) -> str:
    """Comparison form: letters, digits, apostrophes and spaces, lowercased."""
    return _NON_WORD_PATTERN.sub("", line).strip().lower()


def match_discourse(line: str, markers: Sequence[str] = DEFAULT_MARKERS) -> Optional[DiscourseMatch]:
    """Return the marker a line repeats ("na na na", "na-na", "nanana"), if any.

    Markers are tried in order and the first one that covers the whole
    normalized line wins.
    """
    normalized = normalize_line(line)
    if not normalized:
        return None
    for marker in markers:
        if not marker:
            continue
        escaped = re.escape(marker.lower())
        if re.fullmatch(rf"(?:{escaped}[ -]*)+", normalized):
            return DiscourseMatch(marker.lower(), len(re.findall(escaped, normalized)))
    return None


def split_lines(text: str) -> List[Tuple[int, str]]:
    """Return ``(row, line)`` pairs, skipping blank rows and ``[Section]`` tags."""
    rows: List[Tuple[int, str]] = []
    for index, raw in enumerate(_LINE_BREAK_PATTERN.split(text)):
        line = raw.strip()
        if not line or _BRACKET_TAG_PATTERN.match(line):
            continue
        rows.append((index, line))
    return rows


def classify_lines(
    rows: Sequence[Tuple[int, str]], markers: Sequence[str] = DEFAULT_MARKERS
) -> List[ClassifiedLine]:
    classified: List[ClassifiedLine] = []
    position = 0
    while position < len(rows):
        index, text = rows[position]
        found = match_discourse(text, markers)
        if found is None:
            classified.append(Lyric(text, (index,)))
            position += 1
            continue
        count = found.count
        indices = [index]
        position += 1
        # Only the same marker extends a run.
        while position < len(rows):
            follow = match_discourse(rows[position][1], (found.marker,))
            if follow is None:
                break
            count += follow.count
            indices.append(rows[position][0])
            position += 1
        classified.append(Discourse(found.marker, count, tuple(indices)))
    return classified


def find_repeated_blocks(
    texts: Sequence[str], min_length: int = 2, max_length: int = 6
) -> List[RepeatedBlock]:
    """Find multi-line runs whose normalized text recurs without overlapping.

    Blank entries (discourse lines, punctuation-only rows) never match
    anything, so a window containing one is skipped. Candidates are
    resolved leftmost first, longer blocks winning at the same start.
    """
    keys = [normalize_line(text) for text in texts]
    total = len(keys)
    if total < 2:
        return []

    candidates: List[Tuple[int, int, List[int]]] = []
    for length in range(max(2, min_length), min(max_length, total) + 1):
        starts_by_key: Dict[str, List[int]] = {}
        for start in range(total - length + 1):
            window = keys[start : start + length]
            if not all(window):
                continue
            starts_by_key.setdefault("\n".join(window), []).append(start)
        for starts in starts_by_key.values():
            if len(starts) >= 2:
                candidates.append((starts[0], length, starts))
    # Stable sort keeps first-seen key order among equal (start, length).
    candidates.sort(key=lambda candidate: (candidate[0], -candidate[1]))

    taken = [False] * total
    blocks: List[RepeatedBlock] = []
    for _, length, starts in candidates:
        kept: List[int] = []
        for start in starts:
            if kept and start < kept[-1] + length:
                continue
            if any(taken[start : start + length]):
                continue
            kept.append(start)
        if len(kept) < 2:
            continue
        for start in kept:
            for offset in range(length):
                taken[start + offset] = True
        blocks.append(RepeatedBlock(kept[0], length, tuple(kept)))
    blocks.sort(key=lambda block: block.start)
    return blocks


def _merge_member(entries: Sequence[MindmapNode], block: RepeatedBlock, offset: int) -> Lyric:
    lines: Tuple[int, ...] = ()
    for start in block.occurrences:
        lines += entries[start + offset].lines
    return Lyric(entries[block.start + offset].label, lines)


def collapse_repeated_blocks(
    entries: Sequence[ClassifiedLine], settings: Optional[GroupingSettings] = None
) -> List[MindmapNode]:
    """Replace each repeated block by one node at its canonical position.

    The node is labelled with the block's first line and lists the other
    lines as leaves; later occurrences produce no nodes of their own.
    """
    settings = settings or GroupingSettings()
    texts = [entry.label if isinstance(entry, Lyric) else "" for entry in entries]
    blocks = find_repeated_blocks(texts, settings.block_min, settings.block_max)
    if not blocks:
        return list(entries)

    canonical_at = {block.start: block for block in blocks}
    repeated: set[int] = set()
    for block in blocks:
        for start in block.occurrences[1:]:
            repeated.update(range(start, start + block.length))

    collapsed: List[MindmapNode] = []
    position = 0
    while position < len(entries):
        block = canonical_at.get(position)
        if block is not None:
            head = _merge_member(entries, block, 0)
            members = tuple(_merge_member(entries, block, offset) for offset in range(1, block.length))
            collapsed.append(Group(head.label, members, count=block.count, lines=head.lines))
            position += block.length
            continue
        if position not in repeated:
            collapsed.append(entries[position])
        position += 1
    return collapsed


def _stem_candidates(entries: Sequence[MindmapNode], stem_length: int) -> List[Tuple[str, List[int]]]:
    positions_by_stem: Dict[str, List[int]] = {}
    for position, entry in enumerate(entries):
        if not isinstance(entry, Lyric):
            continue
        words = entry.label.split()
        if len(words) < stem_length:
            continue
        key = normalize_line(" ".join(words[:stem_length]))
        if not key:
            continue
        positions_by_stem.setdefault(key, []).append(position)
    # A stem shared by every entry at this level would not branch anything.
    return [
        (key, positions)
        for key, positions in positions_by_stem.items()
        if 2 <= len(positions) < len(entries)
    ]


def _suffix_lines(entries: Sequence[MindmapNode], positions: Sequence[int], stem_length: int) -> List[Lyric]:
    suffixes: List[Lyric] = []
    seen: Dict[str, int] = {}
    for position in positions:
        entry = entries[position]
        suffix = " ".join(entry.label.split()[stem_length:]) or EMPTY_SUFFIX
        key = normalize_line(suffix)
        if key in seen:
            kept = suffixes[seen[key]]
            suffixes[seen[key]] = Lyric(kept.label, kept.lines + entry.lines)
            continue
        seen[key] = len(suffixes)
        suffixes.append(Lyric(suffix, entry.lines))
    return suffixes


def group_by_stem(
    entries: Sequence[MindmapNode],
    settings: Optional[GroupingSettings] = None,
    depth: int = 0,
) -> Tuple[MindmapNode, ...]:
    """Branch lines that share their leading words under one stem node.

    Stem lengths are tried longest first; at the first length where any
    stem qualifies, all qualifying stems of that length are used. Each
    stem node takes the position of its first line and its distinct
    suffixes are grouped again one level down.
    """
    settings = settings or GroupingSettings()
    if len(entries) <= 1 or depth >= settings.max_depth:
        return tuple(entries)

    for stem_length in settings.stem_lengths:
        stems = _stem_candidates(entries, stem_length)
        if not stems:
            continue
        placed: Dict[int, MindmapNode] = {}
        captured: set[int] = set()
        for _, positions in stems:
            first_words = entries[positions[0]].label.split()
            suffixes = _suffix_lines(entries, positions, stem_length)
            placed[positions[0]] = Group(
                " ".join(first_words[:stem_length]),
                group_by_stem(suffixes, settings, depth + 1),
            )
            captured.update(positions)
        grouped: List[MindmapNode] = []
        for position, entry in enumerate(entries):
            if position in placed:
                grouped.append(placed[position])
            elif position not in captured:
                grouped.append(entry)
        return tuple(grouped)

    return tuple(entries)


def build_tree(text: str, settings: Optional[GroupingSettings] = None) -> Group:
    """Turn lyric text into a mindmap rooted at the first lyric line.

    Lines are handled in a fixed precedence: discourse runs, then repeated
    blocks, then shared stems, and whatever is left stays standalone.
    Text without any lyric content yields an empty ``"Song"`` root.
    """
    settings = settings or GroupingSettings()
    rows = split_lines(text)
    if not rows:
        return Group(FALLBACK_TITLE)

    classified = classify_lines(rows, settings.markers)
    title_position = next(
        (position for position, entry in enumerate(classified) if isinstance(entry, Lyric)),
        None,
    )
    if title_position is None:
        title, title_lines = FALLBACK_TITLE, ()
        remaining = classified
    else:
        title, title_lines = classified[title_position].label, classified[title_position].lines
        remaining = classified[:title_position] + classified[title_position + 1 :]

    entries = collapse_repeated_blocks(remaining, settings)
    return Group(title, group_by_stem(entries, settings), lines=title_lines)
