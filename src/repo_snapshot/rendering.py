from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, get_lexer_for_filename
from pygments.util import ClassNotFound

from repo_snapshot.config import DEFAULT_STYLE, FALLBACK_LEXER, AnnotatedContent, PlainContent
from repo_snapshot.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pygments.lexer import Lexer

    from repo_snapshot.config import RenderedContent


BASE_STYLE: Final[str] = """
body {
    font: 10pt Georgia, "Times New Roman", Times, serif;
    line-height: 1.3;
    margin: .5cm .5cm .5cm 1.5cm;
}
.pagebreak {
    margin-top: 50px;
}
pre code {
    display: block;
    white-space: pre;
}
"""


@runtime_checkable
class Renderer(Protocol):
    """Turn the text of one file into its rendered form."""

    @property
    def annotated(self) -> bool: ...

    def render(self, content: str, type_tag: str) -> RenderedContent: ...


class PlainRenderer:
    """Pass content through unchanged."""

    annotated = False

    def render(self, content: str, type_tag: str) -> PlainContent:  # noqa: ARG002
        return PlainContent(text=content)


@lru_cache(maxsize=256)
def lexer_for_tag(type_tag: str) -> Lexer:
    """Find the Pygments lexer for a type tag.

    The tag is tried first as a file extension, then as a lexer alias. Tags
    with no lexer get the general-purpose script lexer.

    Args:
        type_tag (str): the extension-derived type tag (e.g. "py", "js", "")

    Returns:
        Lexer: a lexer that keeps leading and trailing newlines
    """
    if type_tag:
        try:
            return get_lexer_for_filename(f"file.{type_tag}", stripnl=False)
        except ClassNotFound:
            pass
        try:
            return get_lexer_by_name(type_tag, stripnl=False)
        except ClassNotFound:
            pass
    return get_lexer_by_name(FALLBACK_LEXER, stripnl=False)


@lru_cache(maxsize=16)
def document_style(style: str = DEFAULT_STYLE) -> str:
    """Build the style block of the HTML document for a Pygments style.

    Raises:
        ConfigurationError: if Pygments has no style with that name
    """
    try:
        token_css = HtmlFormatter(style=style).get_style_defs("pre code")
    except ClassNotFound as e:
        raise ConfigurationError(message=f"Unknown highlighting style {style!r}") from e
    return f"{BASE_STYLE}\n{token_css}\n"


class AnnotatedRenderer:
    """Highlight content into HTML token spans (``<span class="k">`` for keywords, ``s`` for strings...)."""

    annotated = True

    def __init__(self, style: str = DEFAULT_STYLE) -> None:
        self.style = style
        self.stylesheet = document_style(style)
        self._formatter = HtmlFormatter(style=style, nowrap=True)

    def render(self, content: str, type_tag: str) -> AnnotatedContent:
        lexer = lexer_for_tag(type_tag)
        markup = highlight(content, lexer, self._formatter)
        return AnnotatedContent(markup=markup, type_tag=type_tag, lexer=lexer.name)
