# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Conversion of message HTML into Zola markdown with TOML front matter.

The markup transformation is an ordered list of named stages. Each stage
takes the working text and a placeholder table and returns the new text;
fenced code blocks are parked in the table before the hard-line-break stage
and put back after it, so their interiors are never rewritten.
"""

import re
from datetime import datetime, timezone
from typing import Callable, Dict, List, Tuple

import tomli_w

from ..models.post import Post

FRONT_MATTER_DELIMITER = "+++"

_CODE_SPAN = re.compile(r"<code>([\s\S]*?)</code>")
_FENCED_BLOCK = re.compile(r'<pre><code class="language-(.*?)">([\s\S]*?)</code></pre>')
_BLOCKQUOTE = re.compile(r"<blockquote>([\s\S]*?)</blockquote>")
_SPOILER = re.compile(r"<spoiler>([\s\S]*?)</spoiler>")
_ADDRESS = re.compile(r"(\s\s\n)?0x[0-9a-fA-F]+\n?$", re.MULTILINE | re.ASCII)

HARD_BREAK = "  \n"

Placeholders = Dict[str, str]
Stage = Tuple[str, Callable[[str, Placeholders], str]]

def escape_inline_code(text: str, placeholders: Placeholders) -> str:
    def _escape(match):
        body = match.group(1).replace("<", "&lt;").replace(">", "&gt;")
        return "<code>" + body + "</code>"
    return _CODE_SPAN.sub(_escape, text)

def _placeholder_marker(text: str) -> str:
    # Shortest run of NULs absent from the input
    marker = "\x00"
    while marker in text:
        marker += "\x00"
    return marker

def extract_code_blocks(text: str, placeholders: Placeholders) -> str:
    marker = _placeholder_marker(text)

    def _park(match):
        language = match.group(1)
        body = match.group(2).rstrip("\n")
        token = f"{marker}CODEBLOCK{len(placeholders)}{marker}"
        placeholders[token] = "```" + language + "\n" + body + "\n```"
        return token
    return _FENCED_BLOCK.sub(_park, text)

def join_blockquote_lines(text: str, placeholders: Placeholders) -> str:
    return _BLOCKQUOTE.sub(lambda m: "<blockquote>" + m.group(1).replace("\n", "<br>") + "</blockquote>", text)

def force_hard_line_breaks(text: str, placeholders: Placeholders) -> str:
    text = text.replace("\n", HARD_BREAK)
    return text.replace(HARD_BREAK + HARD_BREAK, "  \n\n")

def restore_code_blocks(text: str, placeholders: Placeholders) -> str:
    if not placeholders:
        return text
    pattern = re.compile("|".join(re.escape(token) for token in placeholders))
    return pattern.sub(lambda m: placeholders[m.group(0)], text)

def convert_spoilers(text: str, placeholders: Placeholders) -> str:
    return _SPOILER.sub(r'<span class="spoiler">\1</span>', text)

STAGES: List[Stage] = [
    ("escape_inline_code", escape_inline_code),
    ("extract_code_blocks", extract_code_blocks),
    ("join_blockquote_lines", join_blockquote_lines),
    ("force_hard_line_breaks", force_hard_line_breaks),
    ("restore_code_blocks", restore_code_blocks),
    ("convert_spoilers", convert_spoilers),
]

def transform_markup(html: str) -> str:
    """Convert message HTML to Zola markdown.

    HTML entities are left as they are; only ``<`` and ``>`` inside inline
    ``<code>`` spans are escaped.
    """
    if not html:
        return ""

    placeholders: Placeholders = {}
    for _name, stage in STAGES:
        html = stage(html, placeholders)
    return html

def extract_title(content: str, fallback: str) -> str:
    """Return ``"<fallback> [0x...]"`` when the content ends a line with an address, else ``fallback``."""
    if not content:
        return fallback

    match = _ADDRESS.search(content)
    if match:
        return f"{fallback} [{match.group(0).strip()}]"
    return fallback

def remove_address_pattern(content: str) -> str:
    """Strip the trailing address token that :func:`extract_title` promotes into the title."""
    return _ADDRESS.sub("", content)

def format_date(value: datetime) -> str:
    """RFC 3339 with second precision. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.replace(microsecond=0)
    if value.utcoffset().total_seconds() == 0:
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")
    return value.isoformat()

def _toml_string(value: str) -> str:
    """Single-line TOML basic string; control characters come out escaped."""
    return tomli_w.dumps({"v": value})[len("v = "):].rstrip("\n")

def build_front_matter(post: Post) -> str:
    lines = [
        FRONT_MATTER_DELIMITER,
        tomli_w.dumps({"title": post.title}).rstrip("\n"),
        f"date = {format_date(post.date)}",
        "",
    ]
    if post.image_names:
        lines.append("[extra]")
        lines.append("images = [" + ", ".join(_toml_string(name) for name in post.image_names) + "]")
    lines.append(FRONT_MATTER_DELIMITER)
    return "\n".join(lines) + "\n\n"

def render_post(post: Post, fallback_title: str) -> str:
    """Render the full markdown file for a post: front matter, body and a trailing newline.

    The title is derived from the raw content when the post has none; the
    address token is then removed from the rendered body.
    """
    body = transform_markup(post.content)
    if not post.title:
        post.title = extract_title(post.content, fallback_title)
    body = remove_address_pattern(body)
    return build_front_matter(post) + body + "\n"
