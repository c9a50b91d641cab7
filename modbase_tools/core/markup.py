"""BBCode announcement bodies to Markdown.

Announcements are written in the store's BBCode dialect. They are
cleaned up, rendered to HTML with ``bbcode`` and converted to Markdown
with ``html2text`` (ATX headings, ``-`` bullets, no wrapping).
"""

from __future__ import annotations

import re
from typing import Any

import bbcode
import html2text

CLAN_IMAGE_PLACEHOLDER = "{STEAM_CLAN_IMAGE}"
CLAN_IMAGE_BASE = "https://clan.akamai.steamstatic.com/images"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

_LIST_ITEM_CLOSE = re.compile(r"\[\*\](.*?)\[/\*\]", re.DOTALL)
_OLIST_OPEN = re.compile(r"\[olist\]", re.IGNORECASE)
_OLIST_CLOSE = re.compile(r"\[/olist\]", re.IGNORECASE)
_URL_EXTRA_ATTRS = re.compile(r"\[url=([^\s\]]+)\s+[^\]]*\]", re.IGNORECASE)
_URL_NO_PROTOCOL = re.compile(r"\[url=(?!https?://)([^\]]+)\]", re.IGNORECASE)


def normalize_bbcode(body: str) -> str:
    """Fix markup quirks common in store announcements.

    - ``[*]item[/*]`` -> ``[*]item`` (list items close on newline)
    - ``[olist]`` -> ``[list=1]`` (numbered list)
    - ``[url=link style=button]`` -> ``[url=link]``
    - ``[url=example.com]`` -> ``[url=https://example.com]``
    - ``{STEAM_CLAN_IMAGE}`` -> image CDN base URL
    """
    body = _LIST_ITEM_CLOSE.sub(r"[*]\1", body)
    body = _OLIST_OPEN.sub("[list=1]", body)
    body = _OLIST_CLOSE.sub("[/list]", body)
    body = _URL_EXTRA_ATTRS.sub(r"[url=\1]", body)
    body = _URL_NO_PROTOCOL.sub(r"[url=https://\1]", body)
    return body.replace(CLAN_IMAGE_PLACEHOLDER, CLAN_IMAGE_BASE)


def _render_img(tag_name: str, value: str, options: dict[str, Any], parent: Any, context: Any) -> str:
    src = options.get("src") or options.get("img") or value
    return f'<img src="{src.strip()}" alt="">'


def _render_youtube(tag_name: str, value: str, options: dict[str, Any], parent: Any, context: Any) -> str:
    video_id = (options.get("previewyoutube") or value).split(";")[0].strip()
    url = YOUTUBE_WATCH_URL.format(video_id=video_id)
    return f'<p><a href="{url}">{url}</a></p>'


def build_bbcode_parser() -> bbcode.Parser:
    """BBCode parser with the store's extra tags installed."""
    parser = bbcode.Parser(replace_cosmetic=False)

    block = {"strip": True, "swallow_trailing_newline": True}
    for level in ("h1", "h2", "h3"):
        parser.add_simple_formatter(level, f"<{level}>%(value)s</{level}>", **block)
    parser.add_simple_formatter("p", "<p>%(value)s</p>", **block)
    parser.add_simple_formatter("strike", "<del>%(value)s</del>")
    parser.add_simple_formatter("spoiler", "<span>%(value)s</span>")
    parser.add_simple_formatter("noparse", "%(value)s", render_embedded=False)

    table = {"transform_newlines": False, "strip": True, "swallow_trailing_newline": True}
    parser.add_simple_formatter("table", "<table>%(value)s</table>", **table)
    parser.add_simple_formatter("tr", "<tr>%(value)s</tr>", **table)
    parser.add_simple_formatter("th", "<th>%(value)s</th>", **table)
    parser.add_simple_formatter("td", "<td>%(value)s</td>", **table)

    parser.add_formatter(
        "img", _render_img, replace_links=False, replace_cosmetic=False, render_embedded=False
    )
    parser.add_formatter(
        "previewyoutube", _render_youtube, replace_links=False, render_embedded=False
    )
    return parser


def build_markdown_converter() -> html2text.HTML2Text:
    """HTML to Markdown converter with a fixed output style."""
    converter = html2text.HTML2Text()
    converter.body_width = 0
    converter.ul_item_mark = "-"
    converter.emphasis_mark = "_"
    converter.strong_mark = "**"
    converter.unicode_snob = True
    converter.ignore_images = False
    converter.ignore_links = False
    return converter


class MarkupConverter:
    """Convert announcement BBCode to normalized Markdown."""

    def __init__(self) -> None:
        self.parser = build_bbcode_parser()

    def to_html(self, body: str) -> str:
        return self.parser.format(normalize_bbcode(body))

    def to_markdown(self, body: str) -> str:
        # HTML2Text keeps state between calls, so each conversion gets a fresh one
        converter = build_markdown_converter()
        markdown = converter.handle(self.to_html(body))
        lines = [line.rstrip() for line in markdown.strip().splitlines()]
        return re.sub(r"\n{3,}", "\n\n", "\n".join(lines))
