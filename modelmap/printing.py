"""Markdown-style console output for named collections of tables."""

from collections.abc import Mapping
from typing import Any, Optional, TextIO

import pandas as pd


def render_table(table: pd.DataFrame, floatfmt: str = ".4g") -> str:
    """Render a DataFrame as a GitHub-style Markdown table without the index."""
    return table.to_markdown(index=False, floatfmt=floatfmt)


def _render(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, pd.DataFrame):
        return render_table(content)
    # Other renderables (Series, statsmodels tables) know how to display themselves
    if hasattr(content, "to_markdown"):
        return content.to_markdown()
    return str(content)


def print_header(title: str, file: Optional[TextIO] = None) -> None:
    print(f"# {title}", file=file)
    print(file=file)


def print_sections(mapping: Mapping[str, Any], file: Optional[TextIO] = None) -> None:
    """
    Print each (name, content) pair as a labeled section, in insertion order:

        ## <name>
        <rendered content>
        <blank line>
    """
    for name, content in mapping.items():
        print(f"## {name}", file=file)
        print(_render(content), file=file)
        print(file=file)
