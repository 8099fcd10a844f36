from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import List, Optional, Tuple

from dashboard.config import Settings
from dashboard.exceptions import error_chain
from dashboard.logging_config import get_logger
from dashboard.repository import Repository
from dashboard.schemas import Feed, FeedItem, PreviewItem, PreviewResult
from dashboard.services.feed_fetcher import FeedFetcher
from dashboard.utils.date_utils import utcnow

logger = get_logger(__name__)


class ThreadFeedStore:
    """Store refreshed feeds on a background thread pool, logging failures"""

    def __init__(self, repository: Repository, max_workers: int = 4):
        self.repository = repository
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="feed-store")

    def dispatch(self, feed: Feed, items: List[FeedItem]) -> None:
        self.executor.submit(self._store, feed, items)

    def _store(self, feed: Feed, items: List[FeedItem]) -> None:
        try:
            self.repository.store_feed(feed, items)
        except Exception as e:
            logger.error(f"Storage of feed {feed.id} failed: {error_chain(e)}")

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)


class CeleryFeedStore:
    """Hand refreshed feeds to the Celery worker"""

    def dispatch(self, feed: Feed, items: List[FeedItem]) -> None:
        try:
            from dashboard.celery.celery_tasks import store_feed
            store_feed.delay(
                feed.model_dump(mode="json"),
                [item.model_dump(mode="json") for item in items]
            )
            logger.info(f"Queued storage of feed {feed.id}")
        except Exception as e:
            logger.error(f"Failed to queue storage of feed {feed.id}: {e}")

    def shutdown(self, wait: bool = True) -> None:
        pass


def create_feed_store(settings: Settings, repository: Repository):
    if settings.FEED_STORE_BACKEND == "celery":
        return CeleryFeedStore()
    return ThreadFeedStore(repository, max_workers=settings.FEED_STORE_WORKERS)


class FeedService:
    """
    Serve feeds from storage, refreshing them from their source when due.

    A refresh answers the caller with the freshly fetched items right away
    and hands the write to the feed store, which runs independently of the
    request.
    """

    def __init__(
        self,
        repository: Repository,
        settings: Settings,
        fetcher: Optional[FeedFetcher] = None,
        store=None
    ):
        self.repository = repository
        self.settings = settings
        self.fetcher = fetcher or FeedFetcher()
        self.store = store or create_feed_store(settings, repository)

    def feed(self, feed_id: int, load_items: bool = False) -> Tuple[Feed, List[FeedItem]]:
        """
        Get a feed and, optionally, its items.

        Args:
            feed_id: Feed identifier
            load_items: Whether stored items are needed when no refresh happens

        Returns:
            Tuple of (feed, items); items are always present after a refresh
        """
        feed = self.repository.get_feed(feed_id)

        now = utcnow()
        if now > feed.next_retrieval:
            parsed = self.fetcher.fetch(feed.url)
            feed = feed.model_copy(update={
                "next_retrieval": now + timedelta(minutes=self.settings.FEED_REFRESH_MINUTES),
                "title": parsed.title,
            })
            logger.info(f"Refreshed feed {feed.id} ({len(parsed.items)} items)")
            self.store.dispatch(feed, parsed.items)
            return feed, parsed.items

        items: List[FeedItem] = []
        if load_items:
            items = self.repository.get_feed_items(feed_id)
        return feed, items

    def preview(self, url: str) -> PreviewResult:
        parsed = self.fetcher.fetch(url)
        return PreviewResult(
            title=parsed.title,
            items=[
                PreviewItem(title=item.title, published=item.published, link=item.link)
                for item in parsed.items
            ]
        )

    def shutdown(self) -> None:
        self.store.shutdown()
