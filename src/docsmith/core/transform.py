"""Markdown to HTML transform with project-specific rendering rules.

Conversion is delegated to mistune. The rules applied on top of it are
plain functions over rendered HTML fragments, called from the renderer
hooks in this order: code highlighting, blockquote classification,
table and image styling.
"""

import logging
import re
from typing import cast

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

CODE_CLASS_PREFIX = "hljs lang-"
TABLE_CLASS = "table table-bordered"
IMAGE_CLASS = "img-responsive"

# Marker (matched case-insensitively at the start of the body) -> CSS class
BLOCKQUOTE_CLASSES: tuple[tuple[str, str], ...] = (
    ("warning", "alert alert-warning"),
    ("note", "alert alert-default"),
)

_ESCAPED_LINE_BREAK_RE = re.compile(r"&lt;br\s*/?&gt;", re.IGNORECASE)
_FORMATTER = HtmlFormatter(nowrap=True)


def resolve_lexer(code: str, lang: str | None) -> Lexer:
    """Pick a lexer for a code block.

    The declared language hint wins when pygments knows it; otherwise the
    language is detected from the code itself.

    Args:
        code: Source code of the block
        lang: Language hint from the fence info string, if any

    Returns:
        Lexer instance to highlight with
    """
    if lang:
        try:
            return get_lexer_by_name(lang)
        except ClassNotFound:
            logger.debug(f"Unknown language hint {lang!r}, detecting language")
    return guess_lexer(code)


def highlight_code(code: str, lang: str | None) -> str:
    """Render a fenced code block as highlighted HTML."""
    lexer = resolve_lexer(code, lang)
    name = lexer.aliases[0] if lexer.aliases else "text"
    body = highlight(code, lexer, _FORMATTER)
    return f'<pre><code class="{CODE_CLASS_PREFIX}{name}">{body}</code></pre>\n'


def classify_blockquote(body: str) -> str:
    """Wrap a rendered blockquote body according to its leading marker.

    Only the start of the body is inspected: a bold "Warning" or "Note"
    opening the first paragraph turns the blockquote into an alert box.
    Escaped ``<br/>`` markers are turned back into real line breaks.

    Args:
        body: Rendered HTML inside the blockquote

    Returns:
        Complete HTML for the blockquote
    """
    body = _ESCAPED_LINE_BREAK_RE.sub("<br/>", body)
    lead = body.lstrip().lower()
    for marker, css_class in BLOCKQUOTE_CLASSES:
        if lead.startswith(f"<p><strong>{marker}"):
            return f'<div class="{css_class}">\n{body}</div>\n'
    return f"<blockquote>\n{body}</blockquote>\n"


def style_table(body: str) -> str:
    return f'<table class="{TABLE_CLASS}">\n{body}</table>\n'


def style_image(img_html: str) -> str:
    return img_html.replace("<img ", f'<img class="{IMAGE_CLASS}" ', 1)


class SiteRenderer(mistune.HTMLRenderer):
    """HTML renderer wired to the site transform rules.

    Raw HTML in the source is passed through untouched.
    """

    def __init__(self) -> None:
        super().__init__(escape=False)

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.strip().split(None, 1)[0] if info and info.strip() else None
        return highlight_code(code, lang)

    def block_quote(self, text: str) -> str:
        return classify_blockquote(text)

    def table(self, text: str) -> str:
        return style_table(text)

    def image(self, text: str, url: str, title: str | None = None) -> str:
        return style_image(super().image(text, url, title))


class ContentTransform:
    """Renders markdown to HTML.

    Output is deterministic for identical input. One instance can be shared
    between threads: every call parses into fresh state.
    """

    def __init__(self) -> None:
        self._markdown = mistune.create_markdown(
            renderer=SiteRenderer(),
            plugins=["table", "strikethrough"],
        )

    def render(self, markdown_text: str) -> str:
        """Convert markdown text to HTML.

        Args:
            markdown_text: Markdown source

        Returns:
            Rendered HTML
        """
        logger.debug(f"Rendering {len(markdown_text)} characters of markdown")
        return cast(str, self._markdown(markdown_text))
