import feedparser

from dashboard.exceptions import FeedFetchError
from dashboard.logging_config import get_logger
from dashboard.schemas import FeedItem, ParsedFeed
from dashboard.utils.date_utils import from_struct_time, utcnow

logger = get_logger(__name__)

USER_AGENT = "dashboard-api/0.8 (+feedparser)"


class FeedFetcher:
    """Retrieve and parse RSS/Atom feeds with feedparser"""

    def __init__(self, user_agent: str = USER_AGENT):
        self.user_agent = user_agent

    def fetch(self, url: str) -> ParsedFeed:
        """
        Download and parse the feed at ``url``.

        Items without a publication date are stamped with the fetch time;
        items without an id fall back to their link.

        Raises:
            FeedFetchError: If nothing usable could be parsed
        """
        parsed = feedparser.parse(url, agent=self.user_agent)

        if parsed.get("bozo") and not parsed.entries:
            reason = parsed.get("bozo_exception")
            logger.error(f"Failed to parse feed {url}: {reason}")
            raise FeedFetchError(url, str(reason) if reason else None)

        status = parsed.get("status")
        if status is not None and status >= 400:
            raise FeedFetchError(url, f"HTTP {status}")

        now = utcnow()
        items = []
        for entry in parsed.entries:
            published = (
                from_struct_time(entry.get("published_parsed"))
                or from_struct_time(entry.get("updated_parsed"))
                or now
            )
            guid = entry.get("id") or entry.get("link") or entry.get("title", "")
            items.append(FeedItem(
                guid=guid,
                title=entry.get("title", ""),
                published=published,
                link=entry.get("link", "")
            ))

        logger.info(f"Fetched {len(items)} items from {url}")
        return ParsedFeed(title=parsed.feed.get("title", ""), items=items)
