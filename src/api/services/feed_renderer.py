"""
Feed Renderer

Turns upstream board DTOs into standalone XML documents:

- ``render_board_feed``: RSS 2.0 channel with one item per thread
- ``render_thread_feed``: RSS 2.0 channel with one item per reply, newest first
- ``render_sitemap``: sitemap index with one entry per board

The renderers are pure apart from reading the current time, which can be
passed in explicitly. Both RSS documents carry a stylesheet processing
instruction right after the XML declaration; the sitemap does not.
"""

import re
import xml.etree.ElementTree as ET
from datetime import date, datetime, timezone
from email.utils import format_datetime
from typing import Iterable, Optional

from src.api.schemas.boards import Board, BoardThreads, ThreadReplies

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
STYLESHEET_INSTRUCTION = '<?xml-stylesheet type="text/css" href="/xml-styles.css"?>'

ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"
SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"

CHANNEL_DESCRIPTION = "Messageboard by kolaczyn"
SITEMAP_CHANGEFREQ = "weekly"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# C0 controls other than tab, LF and CR are not allowed anywhere in XML 1.0
_INVALID_XML_CHARS_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


class FeedRenderError(Exception):
    """Raised when a DTO cannot be turned into a document."""


def _xml_text(value: object) -> str:
    return _INVALID_XML_CHARS_RE.sub("", str(value))


def format_rfc822(value: Optional[datetime]) -> str:
    """Format a timestamp as an RFC 822 date in GMT.

    Missing timestamps fall back to the Unix epoch; naive values are UTC.
    """
    if value is None:
        value = _EPOCH
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def board_url(site_url: str, board_slug: str) -> str:
    return f"{site_url}/boards/{board_slug}"


def thread_url(site_url: str, board_slug: str, thread_id: int | str) -> str:
    return f"{board_url(site_url, board_slug)}/{thread_id}"


def _serialize(root: ET.Element, stylesheet: bool) -> str:
    ET.indent(root, space="  ")
    # Literal CRs would be folded into LF by any parser reading the document back
    body = ET.tostring(root, encoding="unicode").replace("\r", "&#13;")
    head = [XML_DECLARATION, STYLESHEET_INSTRUCTION] if stylesheet else [XML_DECLARATION]
    return "\n".join([*head, body])


def _build_channel(title: str, link: str, now: datetime) -> tuple[ET.Element, ET.Element]:
    rss = ET.Element("rss", {"xmlns:atom": ATOM_NAMESPACE, "version": "2.0"})
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = _xml_text(title)
    ET.SubElement(channel, "description").text = CHANNEL_DESCRIPTION
    ET.SubElement(channel, "link").text = _xml_text(link)
    ET.SubElement(channel, "lastBuildDate").text = format_rfc822(now)
    return rss, channel


def _add_item(
    channel: ET.Element,
    title: str,
    link: str,
    pub_date: Optional[datetime],
    description: Optional[str] = None,
) -> None:
    item = ET.SubElement(channel, "item")
    ET.SubElement(item, "title").text = _xml_text(title)
    if description is not None:
        ET.SubElement(item, "description").text = _xml_text(description)
    ET.SubElement(item, "link").text = _xml_text(link)
    ET.SubElement(item, "pubDate").text = format_rfc822(pub_date)


def render_board_feed(
    result: BoardThreads,
    board_slug: str,
    site_url: str,
    now: Optional[datetime] = None,
) -> str:
    """Render a board's thread list as RSS, keeping the upstream order."""
    now = now or datetime.now(timezone.utc)
    try:
        rss, channel = _build_channel(
            title=f"/{result.slug}/ - {result.name}",
            link=board_url(site_url, board_slug),
            now=now,
        )
        for thread in result.threads:
            _add_item(
                channel,
                title=thread.message,
                description=f"Reply count: {thread.replies_count}",
                link=thread_url(site_url, board_slug, thread.id),
                pub_date=thread.created_at,
            )
        return _serialize(rss, stylesheet=True)
    except (AttributeError, TypeError, ValueError) as e:
        raise FeedRenderError(f"Cannot render board feed for {board_slug!r}: {e}") from e


def render_thread_feed(
    result: ThreadReplies,
    board_slug: str,
    thread_id: int,
    site_url: str,
    now: Optional[datetime] = None,
) -> str:
    """Render a thread's replies as RSS, newest reply first."""
    now = now or datetime.now(timezone.utc)
    link = thread_url(site_url, board_slug, thread_id)
    try:
        rss, channel = _build_channel(title=f"{result.title}/", link=link, now=now)
        for reply in reversed(result.replies):
            _add_item(
                channel,
                title=reply.message,
                link=f"{link}#{reply.id}",
                pub_date=reply.created_at,
            )
        return _serialize(rss, stylesheet=True)
    except (AttributeError, TypeError, ValueError) as e:
        raise FeedRenderError(
            f"Cannot render thread feed for {board_slug!r}/{thread_id}: {e}"
        ) from e


def render_sitemap(
    boards: Iterable[Board],
    site_url: str,
    today: Optional[date] = None,
) -> str:
    """Render a sitemap index; every entry shares the local calendar date."""
    lastmod = (today or date.today()).isoformat()
    try:
        index = ET.Element("sitemapindex", {"xmlns": SITEMAP_NAMESPACE})
        for board in boards:
            entry = ET.SubElement(index, "sitemap")
            ET.SubElement(entry, "loc").text = _xml_text(board_url(site_url, board.slug))
            ET.SubElement(entry, "lastmod").text = lastmod
            ET.SubElement(entry, "changefreq").text = SITEMAP_CHANGEFREQ
        return _serialize(index, stylesheet=False)
    except (AttributeError, TypeError, ValueError) as e:
        raise FeedRenderError(f"Cannot render sitemap: {e}") from e
