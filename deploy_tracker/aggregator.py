# deploy_tracker/aggregator.py
import asyncio
import enum
import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError

from deploy_tracker.errors import UpstreamError
from deploy_tracker.ingest import url_hash
from deploy_tracker.models import RepoSummary
from deploy_tracker.reputation import ReputationClient
from deploy_tracker.store import EventStore, GroupedRow


CSV_HEADER = ["URL", "Year", "Month", "Deployments"]
BUTTON_LINK_BASE = "https://bluemix.net/deploy?repository="

_http_url = TypeAdapter(HttpUrl)


class Shape(enum.Enum):
    OVERVIEW = "by_repo"         # key: (url, year, month)
    PER_REPO = "by_repo_hash"    # key: (url_hash, url, year, month)


def is_valid_url(url: Optional[str]) -> bool:
    """True iff ``url`` is an absolute http(s) URL with a host."""
    if not url:
        return False
    try:
        _http_url.validate_python(url)
    except ValidationError:
        return False
    return True


def fold_rows(rows: Iterable[GroupedRow], shape: Shape) -> List[RepoSummary]:
    """Fold grouped (url, year, month) counts into one summary per url.

    Rows are taken in store order. A (year, month) bucket is written once:
    a later row for the same bucket is ignored and does not touch ``count``.
    """
    summaries: Dict[Optional[str], RepoSummary] = {}
    for row in rows:
        if shape is Shape.PER_REPO:
            key_hash, url, year, month = row.key
        else:
            url, year, month = row.key
            key_hash = url_hash(url) if url else None

        summary = summaries.get(url)
        if summary is None:
            summary = RepoSummary(url=url, url_hash=key_hash or None, is_url=is_valid_url(url))
            summaries[url] = summary

        months = summary.deploys.setdefault(year, {})
        if month not in months:
            months[month] = row.value
            summary.count += row.value
    return list(summaries.values())


def sort_by_count(summaries: Iterable[RepoSummary]) -> List[RepoSummary]:
    # sorted() is stable with reverse=True: equal counts keep encounter order.
    return sorted(summaries, key=lambda s: s.count, reverse=True)


def attach_links(summary: RepoSummary, protocol_and_host: str) -> RepoSummary:
    if not summary.url_hash:
        return summary
    stats_base = f"{protocol_and_host}/stats/{summary.url_hash}"
    summary.badge_image_url = f"{stats_base}/badge.svg"
    summary.badge_markdown = f"![Bluemix Deployments]({summary.badge_image_url})"
    summary.button_image_url = f"{stats_base}/button.svg"
    summary.button_link_url = f"{BUTTON_LINK_BASE}{summary.url or ''}"
    summary.button_markdown = f"[![Deploy to Bluemix]({summary.button_image_url})]({summary.button_link_url})"
    return summary


class Aggregator:
    """Read side of the tracker: turns grouped event counts into summaries."""

    def __init__(self, store: EventStore, reputation: Optional[ReputationClient] = None):
        self.store = store
        self.reputation = reputation

    async def _reputation_for(self, url: Optional[str]) -> Optional[Any]:
        if self.reputation is None or not url:
            return None
        try:
            return await self.reputation.fetch(url)
        except UpstreamError as e:
            logging.error(f"REPUTATION FAILED: {url} | {e}")
            return None

    async def overview(self) -> List[RepoSummary]:
        rows = self.store.query_grouped(Shape.OVERVIEW.value, group_level=3)
        summaries = fold_rows(rows, Shape.OVERVIEW)

        results = await asyncio.gather(*(self._reputation_for(s.url) for s in summaries))
        for summary, stats in zip(summaries, results):
            summary.reputation_stats = stats

        return sort_by_count(summaries)

    def repo_breakdown(self, hash_: str, protocol_and_host: str) -> List[RepoSummary]:
        rows = self.store.query_grouped(Shape.PER_REPO.value, group_level=4, key_prefix=(hash_,))
        summaries = [attach_links(s, protocol_and_host) for s in fold_rows(rows, Shape.PER_REPO)]
        return sort_by_count(summaries)

    def repo_count(self, hash_: str) -> int:
        rows = self.store.query_grouped(Shape.PER_REPO.value, group_level=1, key_prefix=(hash_,))
        return rows[0].value if rows else 0

    def csv_rows(self) -> List[List[Any]]:
        rows = self.store.query_grouped(Shape.OVERVIEW.value, group_level=3)
        return [CSV_HEADER] + [[*row.key, row.value] for row in rows]

    def distinct_urls(self) -> List[Optional[str]]:
        # group_level 1 collapses the key to the url, already distinct and in store order
        rows = self.store.query_grouped(Shape.OVERVIEW.value, group_level=1)
        return [row.key[0] for row in rows]
