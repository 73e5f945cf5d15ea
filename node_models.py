from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Lyric:
    label: str
    # Source line indices this label stands for (more than one when a
    # duplicate suffix or a repeated block occurrence was folded in).
    lines: Tuple[int, ...] = ()

    @property
    def big(self) -> bool:
        return False

    @property
    def count(self) -> Optional[int]:
        return None

    @property
    def children(self) -> Tuple["MindmapNode", ...]:
        return ()


@dataclass(frozen=True)
class Discourse:
    marker: str
    count: int
    lines: Tuple[int, ...] = ()

    @property
    def label(self) -> str:
        return self.marker

    @property
    def big(self) -> bool:
        return True

    @property
    def children(self) -> Tuple["MindmapNode", ...]:
        return ()


@dataclass(frozen=True)
class Group:
    """Inner node: a shared stem, a collapsed repeated block, or the root.

    ``count`` is only set for repeated blocks. ``lines`` is empty for stem
    groups because the stem text belongs to every child line.
    """

    label: str
    children: Tuple["MindmapNode", ...] = field(default_factory=tuple)
    count: Optional[int] = None
    lines: Tuple[int, ...] = ()

    @property
    def big(self) -> bool:
        return False


MindmapNode = Union[Lyric, Discourse, Group]


def to_dict(node: MindmapNode) -> Dict[str, Any]:
    """Plain ``{label, big, count, children}`` mapping handed to renderers."""
    return {
        "label": node.label,
        "big": node.big,
        "count": node.count,
        "children": [to_dict(child) for child in node.children],
    }


def source_lines(node: MindmapNode) -> List[int]:
    collected: List[int] = list(node.lines)
    for child in node.children:
        collected.extend(source_lines(child))
    return collected


def display_label(node: MindmapNode) -> str:
    if isinstance(node, Discourse):
        return f"{node.marker} ×{node.count}" if node.count > 1 else node.marker
    if node.count and node.count > 1:
        return f"{node.label} (×{node.count})"
    return node.label


def max_depth(node: MindmapNode) -> int:
    if not node.children:
        return 0
    return 1 + max(max_depth(child) for child in node.children)
