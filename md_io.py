import json
from typing import List

from node_models import MindmapNode, display_label, to_dict


def to_markdown(root: MindmapNode) -> str:
    """Serialize a lyric mindmap to Markdown.

    Pure mapping of the tree:
    - The root is an H1 heading.
    - A level where any child has children of its own is emitted as
      headings (one level deeper per depth, capped at H6).
    - A level made only of leaves is emitted as ``*`` bullets.
    - Labels carry their repeat tally (``na ×4``, ``Chorus line (×3)``).
    """
    if root is None:
        raise ValueError("root node must not be None")

    lines: List[str] = []

    def emit_blank() -> None:
        # Strip trailing blanks, then add exactly one.
        while lines and lines[-1] == "":
            lines.pop()
        if lines:
            lines.append("")

    def write_heading(node: MindmapNode, depth: int) -> None:
        level = min(depth + 1, 6)
        if level == 2 and lines:
            emit_blank()
            lines.append("---")
        emit_blank()
        lines.append(f"{'#' * level} {display_label(node)}".rstrip())

    def write_children(parent: MindmapNode, depth: int) -> None:
        children = list(parent.children)
        if not children:
            return

        if any(child.children for child in children):
            for child in children:
                write_heading(child, depth)
                write_children(child, depth + 1)
            return

        emit_blank()
        for child in children:
            lines.append(f"  * {display_label(child)}".rstrip())

    write_heading(root, 0)
    write_children(root, 1)

    while lines and lines[-1] == "":
        lines.pop()

    return "\n".join(lines) + "\n"


def to_json(root: MindmapNode) -> str:
    if root is None:
        raise ValueError("root node must not be None")
    return json.dumps(to_dict(root), ensure_ascii=False, indent=2) + "\n"
