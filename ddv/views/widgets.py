"""Widgets that draw ViewContent."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text
from textual import events
from textual.widgets import Static

from ddv.views.model import ViewContent


def content_table(content: ViewContent, height: int) -> Table:
    """Visible window of a list view as a rich Table."""
    table = Table(box=None, show_edge=False, pad_edge=False, header_style="bold")
    for name in content.columns:
        table.add_column(name, no_wrap=True, overflow="ellipsis")

    window = content.rows[content.scroll : content.scroll + max(1, height)]
    for offset, row in enumerate(window):
        selected = content.scroll + offset == content.selection
        cells = []
        for index, cell in enumerate(row):
            style = "reverse" if selected and content.column == index else ""
            cells.append(Text(cell, style=style))
        row_style = None
        if selected:
            row_style = "reverse" if content.column is None else "bold"
        table.add_row(*cells, style=row_style)
    return table


def text_window(lines: tuple[str, ...], scroll: int, height: int, wrap: bool) -> Text:
    window = lines[scroll : scroll + max(1, height)]
    return Text("\n".join(window), no_wrap=not wrap, overflow="fold" if wrap else "ellipsis")


def side_by_side(content: ViewContent, list_part: RenderableType, height: int) -> Table:
    """List pane of ``list_width`` columns with the description pane beside it."""
    grid = Table.grid(expand=True, padding=(0, 2))
    grid.add_column(width=content.list_width, no_wrap=True)
    grid.add_column(ratio=1)
    title_style = "bold reverse" if content.side_focused else "bold"
    side = Group(
        Text(content.side_title, style=title_style),
        text_window(content.side or (), content.side_scroll, height - 1, content.side_wrap),
    )
    grid.add_row(list_part, side)
    return grid


def render_content(content: ViewContent, height: int) -> RenderableType:
    parts: list[RenderableType] = []
    if content.error:
        parts.append(Text(content.error, style="bold red"))
    if content.notice:
        parts.append(Text(content.notice, style="yellow"))

    if content.columns or content.rows:
        if content.summary:
            parts.append(Text(content.summary, style="dim"))
        table = content_table(content, height)
        parts.append(side_by_side(content, table, height) if content.side is not None else table)
    elif content.lines:
        parts.append(text_window(content.lines, content.scroll, height, content.wrap))
    elif content.loading:
        parts.append(Text("Loading...", style="dim"))
    elif not content.error:
        parts.append(Text(content.summary or "Nothing to show", style="dim"))
    return Group(*parts)


class ViewBody(Static):
    """Main area: the table or text of the active view."""

    DEFAULT_CSS = """
    ViewBody {
        height: 1fr;
        width: 1fr;
        padding: 0 1;
    }
    """

    def show(self, content: ViewContent, height: int) -> None:
        self.update(render_content(content, height))

    def on_resize(self, event: events.Resize) -> None:
        self.app.set_viewport(event.size.height)


class ExpandPopup(Static):
    """Raw JSON of the selected attribute."""

    DEFAULT_CSS = """
    ExpandPopup {
        dock: right;
        width: auto;
        max-width: 50%;
        height: auto;
        border: round $accent;
        padding: 0 1;
        display: none;
    }
    """

    def show(self, lines: tuple[str, ...] | None) -> None:
        self.display = lines is not None
        if lines is not None:
            self.update(Text("\n".join(lines)))


class StatusLine(Static):
    """Key hints, notifications, the filter prompt and the spinner."""

    DEFAULT_CSS = """
    StatusLine {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $panel;
    }

    StatusLine.success {
        color: $success;
    }

    StatusLine.warning {
        color: $warning;
    }

    StatusLine.error {
        color: $error;
        text-style: bold;
    }
    """

    LEVELS = ("success", "warning", "error")

    def show(self, text: str, level: str | None = None) -> None:
        for name in self.LEVELS:
            self.set_class(name == level, name)
        self.update(Text(text))
