"""
Diff display — colored per-block diffs and interactive block review.

Includes a Textual-based review screen where each change block can be
confirmed or rejected before the remaining blocks are applied.
"""

from __future__ import annotations

import difflib

from .cli_display import ICONS, format_block_line, format_stats_banner
from .editing.block_state import ReviewSession
from .editing.diff_parser import BlockStatus


def format_block_diff(before: str, after: str, label: str = "buffer") -> str:
    """Unified diff of one block preview; empty string if unchanged."""
    diff = difflib.unified_diff(
        before.splitlines(), after.splitlines(),
        fromfile=f"a/{label}", tofile=f"b/{label}",
        lineterm="",
    )
    return "\n".join(diff)


def format_colored_diff(diff_text: str) -> str:
    """Add ANSI colors to a unified diff string.

    Green for additions (+), red for deletions (-), cyan for @@ hunks.
    """
    colored: list[str] = []
    for line in diff_text.splitlines():
        if line.startswith("+++") or line.startswith("---"):
            colored.append(f"\033[1m{line}\033[0m")  # bold
        elif line.startswith("@@"):
            colored.append(f"\033[36m{line}\033[0m")  # cyan
        elif line.startswith("+"):
            colored.append(f"\033[32m{line}\033[0m")  # green
        elif line.startswith("-"):
            colored.append(f"\033[31m{line}\033[0m")  # red
        else:
            colored.append(line)
    return "\n".join(colored)


def _format_rich_diff(diff_text: str) -> str:
    """Convert unified diff text to Rich markup for Textual display."""
    markup_lines: list[str] = []
    for line in diff_text.splitlines():
        escaped = line.replace("[", "\\[")
        if line.startswith("+++") or line.startswith("---"):
            markup_lines.append(f"[bold white]{escaped}[/bold white]")
        elif line.startswith("@@"):
            markup_lines.append(f"[cyan]{escaped}[/cyan]")
        elif line.startswith("+"):
            markup_lines.append(f"[green]{escaped}[/green]")
        elif line.startswith("-"):
            markup_lines.append(f"[red]{escaped}[/red]")
        else:
            markup_lines.append(escaped)
    return "\n".join(markup_lines)


# ══════════════════════════════════════════════════════════════════
#  Interactive block review
# ══════════════════════════════════════════════════════════════════

def review_blocks(session: ReviewSession, use_tui: bool = True) -> bool:
    """Let the user confirm/reject blocks of *session*.

    Returns ``True`` if the remaining (non-rejected) blocks should be applied.
    """
    if not session.blocks:
        return False
    if use_tui:
        return _textual_block_review(session)
    return _console_block_review(session)


def _block_title(index: int, status: BlockStatus) -> str:
    return f"{ICONS[status]} Block #{index} — {status.value}"


def _textual_block_review(session: ReviewSession) -> bool:
    """Launch a Textual app to review blocks one by one."""
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, VerticalScroll
    from textual.widgets import Button, Footer, Static

    class BlockReviewApp(App):
        """Block-by-block review with confirm/reject and apply remaining."""

        CSS = """
        Screen {
            background: $surface;
        }
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #diff-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        .block-header {
            color: #e9c46a;
            text-style: bold;
            margin: 1 0 0 0;
        }
        .diff-content {
            margin: 0 0 1 0;
        }
        #action-buttons {
            dock: bottom;
            height: 3;
            align: center middle;
            padding: 0 2;
        }
        #action-buttons Button {
            margin: 0 2;
            min-width: 18;
        }
        #summary {
            dock: bottom;
            height: 1;
            text-align: center;
            color: #888;
        }
        """

        BINDINGS = [
            Binding("c", "confirm", "Confirm"),
            Binding("x", "reject", "Reject"),
            Binding("n", "next", "Next"),
            Binding("p", "previous", "Previous"),
            Binding("a", "apply", "Apply remaining"),
            Binding("escape", "cancel", "Cancel"),
        ]

        def __init__(self, review: ReviewSession) -> None:
            super().__init__()
            self._review = review
            self._block_cursor = 0
            self._apply_confirmed = False

        def compose(self) -> ComposeResult:
            yield Static(
                f" ━━  Change Review — {len(self._review.blocks)} block(s)  ━━ ",
                id="title-bar",
            )
            with VerticalScroll(id="diff-scroll"):
                for block, before, after in self._review.previews():
                    yield Static(
                        _block_title(block.index, block.status),
                        id=f"block-title-{block.index}",
                        classes="block-header",
                    )
                    yield Static(
                        _format_rich_diff(format_block_diff(before, after)),
                        classes="diff-content",
                    )
            yield Static(self._summary_text(), id="summary")
            with Horizontal(id="action-buttons"):
                yield Button("✔ Confirm", id="confirm-btn", variant="success")
                yield Button("✕ Reject", id="reject-btn", variant="error")
                yield Button("Apply remaining", id="apply-btn", variant="primary")
            yield Footer()

        def _summary_text(self) -> str:
            stats = self._review.stats()
            return (
                f"  Block #{self._block_cursor}  |  +{stats.added} -{stats.removed} "
                f"~{stats.modified}  |  {self._review.pending_count} pending"
            )

        def _update_view(self) -> None:
            for block in self._review.blocks:
                self.query_one(f"#block-title-{block.index}", Static).update(
                    _block_title(block.index, block.status)
                )
            self.query_one("#summary", Static).update(self._summary_text())

        def on_button_pressed(self, event: Button.Pressed) -> None:
            if event.button.id == "confirm-btn":
                self.action_confirm()
            elif event.button.id == "reject-btn":
                self.action_reject()
            elif event.button.id == "apply-btn":
                self.action_apply()

        def action_confirm(self) -> None:
            self._review.confirm(self._review.blocks[self._block_cursor].index)
            self.action_next()

        def action_reject(self) -> None:
            self._review.reject(self._review.blocks[self._block_cursor].index)
            self.action_next()

        def action_next(self) -> None:
            self._block_cursor = min(self._block_cursor + 1, len(self._review.blocks) - 1)
            self._update_view()

        def action_previous(self) -> None:
            self._block_cursor = max(self._block_cursor - 1, 0)
            self._update_view()

        def action_apply(self) -> None:
            self._apply_confirmed = True
            self.exit()

        def action_cancel(self) -> None:
            self._apply_confirmed = False
            self.exit()

    app = BlockReviewApp(session)
    app.run()
    return app._apply_confirmed


def _console_block_review(session: ReviewSession) -> bool:
    """Console review: one prompt per block, then apply or cancel."""
    print("\n" + "=" * 60)
    print("  CHANGE REVIEW  " + format_stats_banner(session.stats(), len(session.blocks)))
    print("=" * 60)

    for block, before, after in session.previews():
        print(f"\n{'─' * 60}")
        print(format_block_line(block))
        print(format_colored_diff(format_block_diff(before, after)))

        while True:
            try:
                choice = input("  [C]onfirm / [R]eject / [S]kip: ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                return False
            if choice in ("c", "confirm"):
                session.confirm(block.index)
                break
            if choice in ("r", "reject"):
                session.reject(block.index)
                break
            if choice in ("s", "skip", ""):
                break
            print("  Invalid choice. Use C, R or S.")

    print("\n" + "=" * 60)
    print("  " + format_stats_banner(session.stats(), len(session.eligible_indices())))
    print("  [A]pply remaining  |  [Q]uit")
    while True:
        try:
            choice = input("  Your choice: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return False
        if choice in ("a", "apply"):
            return True
        if choice in ("q", "quit"):
            return False
        print("  Invalid choice. Use A or Q.")
