"""
RSS 2.0 feed generation, with podcast extensions for podcast feeds.

Channel and item content is assembled as immutable `Node` fragments; the
document is materialized with lxml and serialized once, so the order in which
extensions are computed never affects the output.

Namespaces:
    content   http://purl.org/rss/1.0/modules/content/   (HTML bodies)
    dc        http://purl.org/dc/elements/1.1/            (item authors)
    atom      http://www.w3.org/2005/Atom                 (self link, updated)
    itunes    Apple podcast tags                          (podcast feeds)
    podcast   Podcast Index "podcasting 2.0" tags         (podcast feeds)
    psc       Podlove Simple Chapters                     (podcast feeds)
    rawvoice  RawVoice subscribe link                     (podcast feeds)
"""

import re
from dataclasses import dataclass
from email.utils import format_datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import structlog
from lxml import etree

from weblog.core.errors import capture_message, error_boundary
from weblog.core.typing import as_utc
from weblog.data.base import WebLogData
from weblog.models import DisplayCategory, Episode, PodcastOptions, Post, WebLog
from weblog.services.categories import find_by_id
from weblog.services.feed_types import CategoryFeed, CustomFeedType, FeedType, StandardFeed, TagFeed

logger = structlog.get_logger(__name__)

NS_CONTENT = "http://purl.org/rss/1.0/modules/content/"
NS_DC = "http://purl.org/dc/elements/1.1/"
NS_ATOM = "http://www.w3.org/2005/Atom"
NS_ITUNES = "http://www.itunes.com/dtds/podcast-1.0.dtd"
NS_PODCAST = "https://podcastindex.org/namespace/1.0"
NS_PSC = "http://podlove.org/simple-chapters/"
NS_RAWVOICE = "http://www.rawvoice.com/rawvoiceRssModule/"

BASE_NAMESPACES = {"content": NS_CONTENT, "dc": NS_DC, "atom": NS_ATOM}
PODCAST_NAMESPACES = {"itunes": NS_ITUNES, "podcast": NS_PODCAST, "psc": NS_PSC, "rawvoice": NS_RAWVOICE}

DEFAULT_FUNDING_TEXT = "Support This Podcast"
EXCERPT_WORDS = 60

_HTML_TAG = re.compile(r"<(.|\n)*?>")
_CHAPTER_TIME = re.compile(r"^(\d+):(\d{1,2})(?::(\d{1,2})(?:\.\d+)?)?$")


@dataclass(frozen=True)
class Node:
    """An element to be written: qualified tag, attributes, text or children."""

    tag: str
    text: Optional[str] = None
    attrs: Tuple[Tuple[str, str], ...] = ()
    children: Tuple["Node", ...] = ()
    cdata: bool = False


def node(tag: str, text: Optional[str] = None, children: Sequence[Node] = (), cdata: bool = False, **attrs) -> Node:
    return Node(
        tag=tag,
        text=text,
        attrs=tuple((key, str(value)) for key, value in attrs.items() if value is not None),
        children=tuple(children),
        cdata=cdata,
    )


def qn(namespace: str, name: str) -> str:
    return f"{{{namespace}}}{name}"


def strip_html(text: str) -> str:
    return _HTML_TAG.sub("", text)


def excerpt(html: str, words: int = EXCERPT_WORDS) -> str:
    """Plain text of the first paragraph, cut to a number of words."""
    end_p = html.find("</p>")
    plain = strip_html(html[:end_p] if end_p >= 0 else html).split()
    if len(plain) <= words:
        return " ".join(plain)
    return " ".join(plain[:words]) + "..."


def rfc822(value) -> str:
    return format_datetime(as_utc(value), usegmt=True)


def absolute(web_log: WebLog, link: str) -> str:
    """Links starting with "http" are already absolute; others are web log permalinks."""
    if link.startswith("http"):
        return link
    return web_log.absolute_url(link.lstrip("/"))


def absolute_body(web_log: WebLog, html: str) -> str:
    """Point root-relative `src` and `href` values at the web log's URL base."""
    return html.replace('src="/', f'src="{web_log.url_base}/').replace('href="/', f'href="{web_log.url_base}/')


# ~~ TITLES AND LINKS ~~


def _category(categories: Sequence[DisplayCategory], category_id: str) -> DisplayCategory:
    cat = find_by_id(categories, category_id)
    if cat is None:
        raise LookupError(f"Category {category_id} is not defined for this web log")
    return cat


def _category_naming(cat: DisplayCategory) -> Tuple[str, str]:
    name = strip_html(cat.name)
    return name, strip_html(cat.description or f'Posts categorized under "{name}"')


def _tag_naming(tag: str) -> Tuple[str, str]:
    return f'Posts Tagged "{tag}"', f'Posts with the "{tag}" tag'


def title_and_description(
    web_log: WebLog, feed_type: FeedType, categories: Sequence[DisplayCategory]
) -> Tuple[str, str]:
    match feed_type:
        case StandardFeed():
            return strip_html(web_log.name), strip_html(web_log.subtitle or web_log.name)
        case CategoryFeed(category_id=category_id):
            return _category_naming(_category(categories, category_id))
        case TagFeed(tag=tag):
            return _tag_naming(tag)
        case CustomFeedType(feed=feed):
            if feed.podcast is not None:
                return strip_html(feed.podcast.title), strip_html(feed.podcast.subtitle or feed.podcast.title)
            if feed.source.kind == "category":
                return _category_naming(_category(categories, feed.source.value))
            return _tag_naming(feed.source.value)
        case _:
            raise TypeError(f"Unknown feed type {feed_type!r}")


def self_and_alternate(
    web_log: WebLog, feed_type: FeedType, categories: Sequence[DisplayCategory]
) -> Tuple[str, str]:
    """Permalinks of the feed itself and of the page the feed mirrors."""
    match feed_type:
        case StandardFeed(path=path) | CategoryFeed(path=path) | TagFeed(path=path):
            archive = path.removesuffix(f"/{web_log.rss.feed_name}").lstrip("/")
            return path.lstrip("/"), f"{archive}/" if archive else ""
        case CustomFeedType(feed=feed):
            if feed.source.kind == "category":
                cat = _category(categories, feed.source.value)
                return feed.path, f"category/{cat.slug}/"
            return feed.path, f"tag/{feed.source.value.replace(' ', '+')}/"
        case _:
            raise TypeError(f"Unknown feed type {feed_type!r}")


# ~~ ITEMS ~~


def item_nodes(
    web_log: WebLog,
    post: Post,
    author: Optional[str],
    categories: Sequence[DisplayCategory],
    tag_urls: Mapping[str, str],
) -> List[Node]:
    """Elements common to every feed item."""
    link = web_log.absolute_url(post.permalink)
    nodes = [
        node("title", post.title),
        node("link", link),
        node("guid", link, isPermaLink="true"),
        node("description", excerpt(post.text)),
    ]
    if post.published_on is not None:
        nodes.append(node("pubDate", rfc822(post.published_on)))
    nodes.append(node(qn(NS_ATOM, "updated"), as_utc(post.updated_on).isoformat()))
    if author:
        nodes.append(node(qn(NS_DC, "creator"), author))
    nodes.append(node(qn(NS_CONTENT, "encoded"), absolute_body(web_log, post.text), cdata=True))

    for category_id in post.category_ids:
        cat = find_by_id(categories, category_id)
        if cat is None:
            logger.warning("Post refers to an unknown category", post_id=post.id, category_id=category_id)
            continue
        nodes.append(node("category", cat.name, domain=web_log.absolute_url(f"category/{cat.slug}/")))

    for tag in post.tags:
        url_tag = tag_urls.get(tag, tag.replace(" ", "+"))
        nodes.append(node("category", tag, domain=web_log.absolute_url(f"tag/{url_tag}/")))
    return nodes


def media_url(web_log: WebLog, podcast: PodcastOptions, media: str) -> str:
    if media.startswith("http"):
        return media
    if podcast.media_base_url:
        return f"{podcast.media_base_url}{media}"
    return web_log.absolute_url(media.lstrip("/"))


def enclosure_node(web_log: WebLog, podcast: PodcastOptions, episode: Episode) -> Node:
    return node(
        "enclosure",
        url=media_url(web_log, podcast, episode.media),
        length=episode.length,
        type=episode.media_type or podcast.default_media_type,
    )


def chapters_node(web_log: WebLog, episode: Episode) -> Optional[Node]:
    if not episode.chapter_file:
        return None
    mime_type = episode.chapter_type
    if mime_type is None and episode.chapter_file.endswith(".json"):
        mime_type = "application/json+chapters"
    return node(qn(NS_PODCAST, "chapters"), url=absolute(web_log, episode.chapter_file), type=mime_type)


def transcript_node(web_log: WebLog, episode: Episode) -> Optional[Node]:
    if not episode.transcript_url:
        return None
    if not episode.transcript_type:
        raise ValueError("A transcript requires a transcript type")
    return node(
        qn(NS_PODCAST, "transcript"),
        url=absolute(web_log, episode.transcript_url),
        type=episode.transcript_type,
        language=episode.transcript_lang,
        rel="captions" if episode.transcript_captions else None,
    )


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def numbering_nodes(episode: Episode) -> List[Node]:
    nodes = []
    if episode.season_number is not None:
        nodes.append(node(qn(NS_PODCAST, "season"), str(episode.season_number), name=episode.season_description))
    if episode.episode_number is not None:
        nodes.append(
            node(
                qn(NS_PODCAST, "episode"),
                _format_number(episode.episode_number),
                name=episode.episode_description,
            )
        )
    return nodes


def parse_chapter_time(value: str) -> int:
    """Seconds from an "H:MM[:SS[.fff]]" timestamp."""
    found = _CHAPTER_TIME.match(value)
    if found is None:
        raise ValueError(f"{value} is not a valid chapter start time")
    hours, minutes, seconds = found.groups()
    return int(hours) * 3600 + int(minutes) * 60 + int(seconds or 0)


def legacy_chapters_node(post: Post) -> Optional[Node]:
    """
    Podlove chapters from "chapter" metadata items ("H:MM:SS Chapter title").

    Any unparsable entry raises, so the caller omits the whole element.
    """
    entries = post.meta("chapter")
    if not entries:
        return None
    chapters = []
    for entry in entries:
        start, _, title = entry.partition(" ")
        chapters.append((parse_chapter_time(start), title))
    chapters.sort(key=lambda chapter: chapter[0])
    return node(
        qn(NS_PSC, "chapters"),
        version="1.2",
        children=[
            node(
                qn(NS_PSC, "chapter"),
                start=f"{start // 3600:02d}:{start % 3600 // 60:02d}:{start % 60:02d}",
                title=title,
            )
            for start, title in chapters
        ],
    )


def episode_nodes(web_log: WebLog, podcast: PodcastOptions, post: Post, episode: Episode) -> List[Node]:
    """
    Podcast elements for one item.

    Optional enhancements are built inside error boundaries: a bad value
    drops that element only.
    """
    nodes = [
        enclosure_node(web_log, podcast, episode),
        node(qn(NS_ITUNES, "author"), podcast.displayed_author),
    ]
    if episode.subtitle:
        nodes.append(node(qn(NS_ITUNES, "subtitle"), episode.subtitle))
    nodes.append(node(qn(NS_ITUNES, "summary"), strip_html(post.text)))
    nodes.append(node(qn(NS_ITUNES, "image"), href=absolute(web_log, episode.image_url or podcast.image_url)))
    nodes.append(node(qn(NS_ITUNES, "explicit"), (episode.explicit or podcast.explicit).value))

    duration = episode.format_duration()
    if duration:
        nodes.append(node(qn(NS_ITUNES, "duration"), duration))

    builders = [
        ("podcast_chapters", lambda: [chapters_node(web_log, episode)]),
        ("podcast_transcript", lambda: [transcript_node(web_log, episode)]),
        ("podcast_numbering", lambda: numbering_nodes(episode)),
        ("podcast_legacy_chapters", lambda: [legacy_chapters_node(post)]),
    ]
    for operation, build in builders:
        with error_boundary(operation, post_id=post.id, permalink=post.permalink):
            nodes.extend(n for n in build() if n is not None)
    return nodes


# ~~ CHANNEL ~~


def podcast_channel_nodes(web_log: WebLog, feed_path: str, podcast: PodcastOptions) -> List[Node]:
    feed_url = web_log.absolute_url(feed_path)
    image_url = absolute(web_log, podcast.image_url)

    # itunes:category names go in a "text" attribute, which node() cannot take as a keyword
    category_children = []
    if podcast.apple_subcategory:
        category_children.append(Node(tag=qn(NS_ITUNES, "category"), attrs=(("text", podcast.apple_subcategory),)))
    nodes = [
        node("image", children=[node("title", podcast.title), node("url", image_url), node("link", feed_url)]),
        node(qn(NS_ITUNES, "summary"), podcast.summary),
        node(qn(NS_ITUNES, "author"), podcast.displayed_author),
    ]
    if podcast.subtitle:
        nodes.append(node(qn(NS_ITUNES, "subtitle"), podcast.subtitle))
    nodes.extend(
        [
            node(
                qn(NS_ITUNES, "owner"),
                children=[node(qn(NS_ITUNES, "name"), podcast.displayed_author), node(qn(NS_ITUNES, "email"), podcast.email)],
            ),
            node(qn(NS_ITUNES, "image"), href=image_url),
            Node(tag=qn(NS_ITUNES, "category"), attrs=(("text", podcast.apple_category),), children=tuple(category_children)),
            node(qn(NS_ITUNES, "explicit"), podcast.explicit.value),
            node(qn(NS_RAWVOICE, "subscribe"), feed=feed_url),
        ]
    )
    if podcast.funding_url:
        nodes.append(
            node(
                qn(NS_PODCAST, "funding"),
                podcast.funding_text or DEFAULT_FUNDING_TEXT,
                url=absolute(web_log, podcast.funding_url),
            )
        )
    if podcast.podcast_guid:
        nodes.append(node(qn(NS_PODCAST, "guid"), podcast.podcast_guid.lower()))
    if podcast.medium:
        nodes.append(node(qn(NS_PODCAST, "medium"), podcast.medium.value))
    return nodes


# ~~ SERIALIZATION ~~


def _write(parent: etree._Element, item: Node) -> None:
    element = etree.SubElement(parent, item.tag, attrib=dict(item.attrs))
    if item.text is not None:
        element.text = etree.CDATA(item.text) if item.cdata else item.text
    for child in item.children:
        _write(element, child)


def build_feed(
    web_log: WebLog,
    feed_type: FeedType,
    posts: Sequence[Post],
    authors: Mapping[str, str],
    tag_urls: Mapping[str, str],
    categories: Sequence[DisplayCategory],
    generator: str,
) -> bytes:
    """
    Render posts as an RSS 2.0 document.

    Args:
        web_log: The web log being served
        feed_type: The feed being generated
        posts: Posts to include (non-empty, newest first)
        authors: Author display names keyed by user id
        tag_urls: URL values of mapped tags, keyed by tag
        categories: The web log's category hierarchy
        generator: Text for the <generator> element

    Returns:
        UTF-8 encoded XML
    """
    if not posts:
        raise ValueError("A feed requires at least one post")

    podcast: Optional[PodcastOptions] = None
    feed_path = ""
    if isinstance(feed_type, CustomFeedType):
        podcast, feed_path = feed_type.feed.podcast, feed_type.feed.path
    title, description = title_and_description(web_log, feed_type, categories)
    self_link, alternate = self_and_alternate(web_log, feed_type, categories)

    channel: List[Node] = [
        node("title", title),
        node("link", web_log.absolute_url(alternate)),
        node("description", description),
        node("language", "en"),
    ]
    if web_log.rss.copyright:
        channel.append(node("copyright", web_log.rss.copyright))
    channel.extend(
        [
            node("generator", generator),
            node("lastBuildDate", rfc822(posts[0].updated_on)),
            node(qn(NS_ATOM, "link"), href=web_log.absolute_url(self_link), rel="self", type="application/rss+xml"),
        ]
    )
    if podcast is not None:
        channel.extend(podcast_channel_nodes(web_log, feed_path, podcast))

    items: List[Node] = []
    for post in posts:
        author = authors.get(post.author_id)
        if podcast is None:
            items.append(node("item", children=item_nodes(web_log, post, author, categories, tag_urls)))
            continue

        if post.episode is not None:
            # Episodes are credited to the podcast, not the post author
            nodes = item_nodes(web_log, post, podcast.displayed_author or author, categories, tag_urls)
            nodes.extend(episode_nodes(web_log, podcast, post, post.episode))
        else:
            nodes = item_nodes(web_log, post, author, categories, tag_urls)
            capture_message(
                "Podcast feed post has no media",
                level="warning",
                context={"feed_path": feed_path, "post_id": post.id, "title": strip_html(post.title)},
            )
        items.append(node("item", children=nodes))

    namespaces = dict(BASE_NAMESPACES)
    if podcast is not None:
        namespaces.update(PODCAST_NAMESPACES)
    root = etree.Element("rss", nsmap=namespaces, version="2.0")
    channel_element = etree.SubElement(root, "channel")
    for item in channel + items:
        _write(channel_element, item)

    return etree.tostring(root, xml_declaration=True, encoding="utf-8", pretty_print=True)


async def generate_feed(
    data: WebLogData,
    web_log: WebLog,
    feed_type: FeedType,
    posts: Sequence[Post],
    categories: Sequence[DisplayCategory],
    generator: str,
) -> bytes:
    """Look up authors and tag mappings for the posts (one query each), then build the feed."""
    author_ids = sorted({post.author_id for post in posts})
    tags = sorted({tag for post in posts for tag in post.tags})
    authors: Dict[str, str] = await data.find_user_names(web_log.id, author_ids)
    tag_maps = await data.find_tag_maps_for_tags(tags, web_log.id)
    tag_urls = {tag_map.tag: tag_map.url_value for tag_map in tag_maps}

    xml = build_feed(web_log, feed_type, posts, authors, tag_urls, categories, generator)
    logger.info("Feed generated", feed_path=getattr(feed_type, "path", None), items=len(posts), bytes=len(xml))
    return xml
