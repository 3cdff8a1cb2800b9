"""
Display utilities for inspecting context state.

Provides a plain-text and a rich rendering of a context and its ancestors,
showing which values each context owns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from ctxhooks.engine import Engine, get_engine
from ctxhooks.errors import hook_name

if TYPE_CHECKING:
    from rich.tree import Tree

try:
    from rich.console import Console
    from rich.markup import escape
    from rich.tree import Tree as _Tree

    HAS_RICH = True
except ImportError:
    HAS_RICH = False

_MAX_VALUE_WIDTH = 60


@dataclass(frozen=True)
class EntrySummary:
    """A value owned by a context, reduced to printable fields."""

    hook: str
    value: str
    unforkable: bool


@dataclass(frozen=True)
class ContextSummary:
    """
    Printable view of one context in a chain.

    Attributes:
        label: ``repr`` of the context.
        entries: Values owned by this context itself.
        detached: True for snapshot forks that no longer read their parent.
    """

    label: str
    entries: tuple[EntrySummary, ...]
    detached: bool = False


def _short(value: Any) -> str:
    text = repr(value)
    if len(text) > _MAX_VALUE_WIDTH:
        text = text[: _MAX_VALUE_WIDTH - 3] + "..."
    return text


def describe(context: Any, engine: Engine | None = None) -> list[ContextSummary]:
    """
    Summarize *context* and its ancestors, nearest first.

    Args:
        context: The context to describe.
        engine: Engine holding the state. Defaults to the default engine.

    Returns:
        One summary per context in the chain.
    """
    engine = engine or get_engine()
    chain = [context, *engine.ancestors(context)]
    summaries = []
    for current in chain:
        entries = tuple(
            EntrySummary(
                hook=hook_name(entry.hook),
                value=_short(entry.value),
                unforkable=entry.unforkable,
            )
            for entry in engine.entries(current)
        )
        summaries.append(
            ContextSummary(
                label=repr(current),
                entries=entries,
                detached=engine.is_detached(current),
            )
        )
    return summaries


def format_context(context: Any, engine: Engine | None = None) -> str:
    """Render *context* and its ancestors as indented plain text."""
    lines = []
    for depth, summary in enumerate(describe(context, engine)):
        indent = "  " * depth
        suffix = " (detached)" if summary.detached else ""
        lines.append(f"{indent}{summary.label}{suffix}")
        if not summary.entries:
            lines.append(f"{indent}  (no own state)")
        for entry in summary.entries:
            marker = " [unforkable]" if entry.unforkable else ""
            lines.append(f"{indent}  {entry.hook} = {entry.value}{marker}")
    return "\n".join(lines)


def render_tree(context: Any, engine: Engine | None = None) -> Tree:
    """
    Build a rich ``Tree`` for *context* and its ancestors.

    Raises:
        ImportError: If rich is not installed.
    """
    if not HAS_RICH:
        raise ImportError(
            "Rich rendering requires the 'rich' package. "
            "Install it with: pip install ctxhooks[rich]"
        )

    root: Any = None
    node: Any = None
    for summary in describe(context, engine):
        label = f"[bold cyan]{escape(summary.label)}[/bold cyan]"
        if summary.detached:
            label += " [dim](detached)[/dim]"
        node = _Tree(label) if node is None else node.add(label)
        if root is None:
            root = node
        if not summary.entries:
            node.add("[dim]no own state[/dim]")
        for entry in summary.entries:
            text = f"{escape(entry.hook)} = {escape(entry.value)}"
            if entry.unforkable:
                text += " [yellow]\\[unforkable][/yellow]"
            node.add(text)
    return root


def print_context(
    context: Any,
    engine: Engine | None = None,
    style: Literal["auto", "rich", "simple"] = "auto",
    console: Any | None = None,
) -> None:
    """
    Print *context* and its ancestors.

    Args:
        context: The context to print.
        engine: Engine holding the state. Defaults to the default engine.
        style: Output style to use:
            - "auto": Use rich if available, otherwise simple
            - "rich": Use rich (raises ImportError if not available)
            - "simple": Use plain text output
        console: Optional rich Console instance.

    Raises:
        ImportError: If style="rich" but rich is not installed.
    """
    if style == "simple" or (style == "auto" and not HAS_RICH):
        print(format_context(context, engine))
        return

    tree = render_tree(context, engine)
    if console is None:
        console = Console()
    console.print(tree)
