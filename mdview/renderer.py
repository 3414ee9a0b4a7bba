"""Markdown to HTML conversion for the viewer window."""

from __future__ import annotations

import html
import logging
import os
import re
from pathlib import Path
from typing import NamedTuple
from urllib.parse import unquote

from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.attrs import attrs_plugin
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

logger = logging.getLogger(__name__)

CONTENT_PLACEHOLDER = "<!-- CONTENT_PLACEHOLDER -->"
TITLE_PLACEHOLDER = "<!-- TITLE_PLACEHOLDER -->"
TEMPLATE_ENV_VAR = "MDVIEW_TEMPLATE"
PACKAGED_TEMPLATE_PATH = Path(__file__).resolve().parent / "resources" / "markdown_template.html"
MINIMAL_TEMPLATE = (
    "<!DOCTYPE html><html><head><style>body{font-family:sans-serif;}</style></head>"
    f"<body>{CONTENT_PLACEHOLDER}</body></html>"
)

# Sources the embedded view can already resolve on its own.
ABSOLUTE_SRC_PREFIXES = ("http://", "https://", "file://", "data:", "about:", "/")

# Only the first `src` attribute of each tag is captured. The head steps over
# whole quoted attribute values, so `src=` text inside `alt` or `title` never
# matches, and the attribute name must follow whitespace so `data-src` and
# friends never match either.
IMG_SRC_RE = re.compile(
    r"""(?P<head><img\b(?:[^>"']|"[^"]*"|'[^']*')*?\ssrc\s*=\s*)(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')""",
    re.IGNORECASE,
)


class TemplateResult(NamedTuple):
    text: str
    source: Path | None
    fallback: bool


def _template_candidates() -> list[Path]:
    candidates: list[Path] = []
    env_value = os.environ.get(TEMPLATE_ENV_VAR, "").strip()
    if env_value:
        candidates.append(Path(env_value).expanduser())
    candidates.append(PACKAGED_TEMPLATE_PATH)
    return candidates


def load_html_template(candidates: list[Path] | None = None) -> TemplateResult:
    """Return the first readable template, falling back to a minimal built-in one."""
    if candidates is None:
        candidates = _template_candidates()

    for candidate in candidates:
        try:
            if not candidate.is_file():
                continue
            text = candidate.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read template %s: %s", candidate, exc)
            continue
        logger.debug("Using HTML template %s", candidate)
        return TemplateResult(text, candidate, False)

    logger.warning("Template file not found, using minimal template")
    return TemplateResult(MINIMAL_TEMPLATE, None, True)


def fill_template(template: str, body: str, title: str = "") -> str:
    """Substitute the rendered body (and title) into an HTML template."""
    document = template.replace(TITLE_PLACEHOLDER, html.escape(title))
    if CONTENT_PLACEHOLDER in document:
        return document.replace(CONTENT_PLACEHOLDER, body)

    # Templates without a placeholder still get the body, just before </body>.
    close_index = document.lower().rfind("</body>")
    if close_index < 0:
        return document + body
    return document[:close_index] + body + document[close_index:]


def _resolve_image_src(src: str, base_directory: str) -> str | None:
    """Map a relative image source to a file URL, or None to leave it alone."""
    value = src.strip()
    if value.lower().startswith(ABSOLUTE_SRC_PREFIXES):
        return None

    try:
        # The converter percent-encodes destinations and the HTML may carry
        # entities; the filesystem wants the plain path.
        relative = unquote(html.unescape(value))
        candidate = os.path.abspath(os.path.join(base_directory, relative))
        if not os.path.isfile(candidate):
            logger.debug("Image not found, leaving src as is: %s", candidate)
            return None
        return Path(candidate).as_uri()
    except (OSError, ValueError) as exc:
        logger.debug("Could not resolve image src %r: %s", src, exc)
        return None


def fix_relative_image_paths(html_text: str, base_directory: str | os.PathLike[str]) -> str:
    """Rewrite relative `<img src>` values that point at existing files into file URLs.

    Only the attribute value is replaced, the rest of the tag is kept byte for
    byte. Absolute, remote and unresolvable sources are left untouched, so the
    function is idempotent.
    """
    base = os.fspath(base_directory)

    def replace(match: re.Match[str]) -> str:
        if match.group("dq") is not None:
            quote, src = '"', match.group("dq")
        else:
            quote, src = "'", match.group("sq")
        file_url = _resolve_image_src(src, base)
        if file_url is None:
            return match.group(0)
        return f"{match.group('head')}{quote}{file_url}{quote}"

    return IMG_SRC_RE.sub(replace, html_text)


class MarkdownRenderer:
    """Converts markdown to HTML with tables, footnotes, task lists, math and Mermaid."""

    def __init__(self, template: str | None = None) -> None:
        self.template = template if template is not None else load_html_template().text
        self._md = (
            MarkdownIt("commonmark", {"html": True, "typographer": True})
            .enable("table")
            .enable("strikethrough")
            .use(footnote_plugin)
            .use(deflist_plugin)
            .use(tasklists_plugin)
            .use(anchors_plugin, min_level=1, max_level=6)
            .use(attrs_plugin)
        )
        # Parse $...$ / $$...$$ as dedicated math tokens before markdown
        # emphasis/underscore rules run, preventing TeX corruption.
        self._md.use(dollarmath_plugin)

        default_fence = self._md.renderer.rules["fence"]

        def custom_math_inline(tokens, idx, options, env):
            # Keep TeX content raw for MathJax, only HTML-escape unsafe chars.
            return f"${html.escape(tokens[idx].content)}$"

        def custom_math_block(tokens, idx, options, env):
            math_body = (tokens[idx].content or "").strip("\n")
            return f'<div class="math-block">$$\n{html.escape(math_body)}\n$$</div>\n'

        def custom_fence(tokens, idx, options, env):
            token = tokens[idx]
            info = token.info.strip().split(maxsplit=1)[0].lower() if token.info.strip() else ""
            if info == "mermaid":
                return f'<div class="mermaid">\n{html.escape(token.content)}\n</div>\n'
            return default_fence(tokens, idx, options, env)

        self._md.renderer.rules["fence"] = custom_fence
        self._md.renderer.rules["math_inline"] = custom_math_inline
        self._md.renderer.rules["math_block"] = custom_math_block

    def render_body(self, markdown_text: str) -> str:
        return self._md.render(markdown_text)

    def render_document(
        self,
        markdown_text: str,
        base_directory: str | os.PathLike[str],
        title: str = "",
    ) -> str:
        """Render a complete HTML page with image paths resolved against base_directory."""
        body = fix_relative_image_paths(self.render_body(markdown_text), base_directory)
        return fill_template(self.template, body, title)
