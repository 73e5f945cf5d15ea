from __future__ import annotations

import argparse
from pathlib import Path
import sys
from typing import Optional, Sequence

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Tree
from textual.widgets._tree import TextType
from rich.text import Text

import activity_log
import config
from lyric_grouping import FALLBACK_TITLE, build_tree
from md_io import to_json, to_markdown
from node_models import Discourse, Group, MindmapNode, display_label, max_depth, source_lines


class MindmapTree(Tree[MindmapNode]):
    """Tree widget specialised for lyric mindmap nodes."""

    def process_label(self, label: TextType) -> Text:
        if isinstance(label, str):
            return Text.from_markup(label, justify="left")
        return label


class LyricsMindmapApp(App[None]):
    """Textual browser for the mindmap built from one lyrics file."""

    TITLE = "lyricmap"

    CSS = """
    #mindmap-tree {
        width: 1fr;
    }
    #mindmap-tree .tree--cursor,
    #mindmap-tree:focus .tree--cursor {
        text-style: none;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=False),
        Binding("s", "save", "Save .md"),
        Binding("j", "save_json", "Save .json"),
        Binding("r", "reload", "Reload"),
        Binding("left", "collapse_cursor", "Collapse", show=False),
        Binding("right", "expand_cursor", "Expand", show=False),
        Binding("a", "expand_all", "Expand All"),
        Binding("1", "level(1)", "Levels", key_display="1-9"),
    ] + [
        Binding(str(i), f"level({i})", "Levels", show=False)
        for i in range(2, 10)
    ]

    def __init__(
        self,
        lyrics_path: str | Path | None = None,
        *,
        lyrics_text: str | None = None,
        settings: config.GroupingSettings | None = None,
    ) -> None:
        super().__init__()
        self.title = "lyricmap"
        self._tree_widget: Optional[MindmapTree] = None
        self._lyrics_path: Optional[Path] = Path(lyrics_path).expanduser() if lyrics_path else None
        self._lyrics_text = lyrics_text or ""
        self._settings = settings or config.GroupingSettings.from_env()
        self._current_level_limit = config.get_level_limit()
        self.mindmap_root: MindmapNode = Group(FALLBACK_TITLE)
        activity_log.reset_log()

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        tree = MindmapTree("Lyrics", id="mindmap-tree")
        tree.show_root = True
        self._tree_widget = tree
        yield tree
        yield Footer()

    def on_mount(self) -> None:
        if self._lyrics_path is not None:
            self._load_lyrics(self._lyrics_path)
        else:
            self._rebuild(announce=True)

    def require_tree(self) -> MindmapTree:
        if self._tree_widget is None:
            raise RuntimeError("Tree widget not initialised")
        return self._tree_widget

    def _rebuild(self, *, announce: bool = False) -> None:
        self.mindmap_root = build_tree(self._lyrics_text, self._settings)
        node_count = self._count_nodes(self.mindmap_root)
        line_count = len(source_lines(self.mindmap_root))
        activity_log.log_event(
            "built",
            str(self._lyrics_path or "<text>"),
            f"{line_count} lines into {node_count} nodes",
        )
        tree = self.require_tree()
        tree.clear()
        self.populate_tree(tree.root, self.mindmap_root)
        tree.select_node(tree.root)
        tree.focus()
        self._apply_level_limit(self._current_level_limit, announce=announce)

    def populate_tree(self, tree_node: Tree.Node[MindmapNode], mindmap_node: MindmapNode) -> None:
        tree_node.set_label(self._format_node_label(mindmap_node))
        tree_node.data = mindmap_node
        for child in mindmap_node.children:
            if child.children:
                child_tree_node = tree_node.add(self._format_node_label(child), data=child)
                self.populate_tree(child_tree_node, child)
            else:
                tree_node.add_leaf(self._format_node_label(child), data=child)

    @staticmethod
    def _format_node_label(node: MindmapNode) -> Text:
        label = display_label(node)
        if isinstance(node, Discourse):
            return Text(label, style="bold")
        if isinstance(node, Group) and node.count:
            return Text(label, style="italic")
        return Text(label)

    def get_selected_tree_node(self) -> Optional[Tree.Node[MindmapNode]]:
        return self.require_tree().cursor_node

    def _apply_level_limit(
        self,
        level_limit: int,
        *,
        anchor: Tree.Node[MindmapNode] | None = None,
        announce: bool = True,
    ) -> None:
        tree = self.require_tree()
        target = anchor or tree.root
        current = target
        while current.parent is not None:
            current.parent.expand()
            current = current.parent

        branch = target.data if target.data is not None else self.mindmap_root
        branch_max_level = max_depth(branch)

        if level_limit <= 0:
            display_level = branch_max_level
            target.expand_all()
        else:
            display_level = max(0, min(level_limit, branch_max_level))

            def clamp(node: Tree.Node[MindmapNode], depth: int) -> None:
                if depth >= display_level:
                    node.collapse()
                    return
                node.expand()
                for child in node.children:
                    clamp(child, depth + 1)

            clamp(target, 0)

        tree.refresh(layout=True)
        if target is tree.root:
            self._current_level_limit = level_limit
        if announce:
            status = f"Level {display_level} of {branch_max_level}"
            if target is not tree.root:
                status = f'{status} under "{display_label(branch)}"'
            self.show_status(level_status=status)

    def _current_level_status(self) -> str:
        max_level = max_depth(self.mindmap_root)
        limit = self._current_level_limit
        display = max_level if limit <= 0 else max(0, min(limit, max_level))
        return f"Level {display} of {max_level}"

    def _load_lyrics(self, path: Path) -> bool:
        target = path.expanduser()
        try:
            self._lyrics_text = target.read_text(encoding="utf-8")
        except OSError as exc:
            activity_log.log_event("failed", str(target), str(exc))
            self.bell()
            self.show_status(f"Failed to load {target}: {exc}")
            return False
        self._lyrics_path = target
        self._rebuild()
        self.show_status(f"Loaded {target}")
        return True

    def _export_path(self, suffix: str) -> Path:
        if self._lyrics_path is not None:
            return self._lyrics_path.with_name(f"{self._lyrics_path.stem}.mindmap{suffix}")
        return Path(f"mindmap{suffix}")

    def _write_export(self, suffix: str, content: str) -> None:
        path = self._export_path(suffix)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            activity_log.log_event("failed", str(path), str(exc))
            self.bell()
            self.show_status(f"Failed to save {path}: {exc}")
            return
        activity_log.log_event("saved", str(path))
        self.show_status(f"Saved to {path}")

    def action_save(self) -> None:
        self._write_export(".md", to_markdown(self.mindmap_root))

    def action_save_json(self) -> None:
        self._write_export(".json", to_json(self.mindmap_root))

    def action_reload(self) -> None:
        if self._lyrics_path is None:
            self._rebuild(announce=True)
            return
        self._load_lyrics(self._lyrics_path)

    def action_level(self, level: int) -> None:
        self._apply_level_limit(level, anchor=self.require_tree().root)

    def action_expand_all(self) -> None:
        tree = self.require_tree()
        target = self.get_selected_tree_node() or tree.root
        self._apply_level_limit(0, anchor=target)

    def action_collapse_cursor(self) -> None:
        node = self.get_selected_tree_node()
        if node:
            node.collapse()

    def action_expand_cursor(self) -> None:
        node = self.get_selected_tree_node()
        if node:
            node.expand()

    def show_status(self, message: str | None = None, *, level_status: str | None = None) -> None:
        level_text = level_status or self._current_level_status()
        composed = f"{level_text} · {message}" if message else level_text
        self.sub_title = composed

    def _count_nodes(self, node: MindmapNode) -> int:
        return 1 + sum(self._count_nodes(child) for child in node.children)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lyricmap",
        description="Group song lyrics into a mindmap and browse or dump it.",
    )
    parser.add_argument(
        "lyrics",
        nargs="?",
        help="Lyrics text file, or '-' to read standard input.",
    )
    dump = parser.add_mutually_exclusive_group()
    dump.add_argument(
        "--markdown",
        action="store_true",
        help="Print the mindmap as Markdown instead of opening the browser.",
    )
    dump.add_argument(
        "--json",
        action="store_true",
        help="Print the mindmap as JSON instead of opening the browser.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = config.GroupingSettings.from_env()
    except ValueError as exc:
        parser.error(str(exc))

    if args.markdown or args.json:
        if args.lyrics is None:
            parser.error("a lyrics file (or '-') is required with --markdown/--json")
        if args.lyrics == "-":
            text = sys.stdin.read()
        else:
            try:
                text = Path(args.lyrics).expanduser().read_text(encoding="utf-8")
            except OSError as exc:
                parser.error(f"cannot read {args.lyrics}: {exc}")
        root = build_tree(text, settings)
        sys.stdout.write(to_json(root) if args.json else to_markdown(root))
        return 0

    if args.lyrics == "-":
        parser.error("standard input can only be used with --markdown or --json")
    LyricsMindmapApp(args.lyrics, settings=settings).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
