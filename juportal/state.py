from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

STATE_KEY = "crawl_state"


@dataclass
class CrawlState:
    """Progress persisted between runs.

    completed_batches holds fully processed sitemap indexes, completed_items the
    sitemaps done inside indexes that are not complete yet.
    """

    completed_batches: List[str] = field(default_factory=list)
    completed_items: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CrawlState":
        data = data or {}
        return cls(
            completed_batches=list(data.get("completed_batches") or []),
            completed_items=list(data.get("completed_items") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed_batches": list(self.completed_batches),
            "completed_items": list(self.completed_items),
        }

    def is_batch_done(self, batch_url: str) -> bool:
        return batch_url in self.completed_batches

    def is_item_done(self, item_url: str) -> bool:
        return item_url in self.completed_items

    def mark_item(self, item_url: str):
        if item_url not in self.completed_items:
            self.completed_items.append(item_url)

    def complete_batch(self, batch_url: str, item_urls: Iterable[str]):
        if batch_url not in self.completed_batches:
            self.completed_batches.append(batch_url)
        covered = set(item_urls)
        self.completed_items = [u for u in self.completed_items if u not in covered]


@dataclass
class Counters:
    saved: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass
class BatchProgress:
    batch_url: str
    item_urls: List[str]
    pending: Set[str]
    failed: int = 0


@dataclass
class CrawlContext:
    """Everything a run mutates. Only the commit phase writes to it."""

    state: CrawlState
    data_store: Any = None
    meta_store: Any = None
    counters: Counters = field(default_factory=Counters)
    batches: Dict[str, BatchProgress] = field(default_factory=dict)
    mark_processed: bool = True

    @classmethod
    def load(cls, data_store, meta_store, mark_processed: bool = True) -> "CrawlContext":
        state = CrawlState.from_dict(meta_store.load(STATE_KEY))
        return cls(state, data_store, meta_store, mark_processed=mark_processed)

    def save_state(self):
        if self.mark_processed:
            self.meta_store.save(STATE_KEY, self.state.to_dict())

    def open_batch(self, batch_url: str, item_urls: List[str], pending_urls: Iterable[str]) -> BatchProgress:
        progress = BatchProgress(batch_url, list(item_urls), set(pending_urls))
        self.batches[batch_url] = progress
        return progress

    def settle(self, batch_url: Optional[str], item_url: str, ok: bool) -> bool:
        """Record an item outcome; True when it completed its batch cleanly."""
        if ok and self.mark_processed:
            self.state.mark_item(item_url)
        progress = self.batches.get(batch_url) if batch_url else None
        if progress is None:
            return False
        progress.pending.discard(item_url)
        if not ok:
            progress.failed += 1
        return self.close_if_done(progress)

    def close_if_done(self, progress: BatchProgress) -> bool:
        if progress.pending:
            return False
        del self.batches[progress.batch_url]
        if progress.failed:
            logger.warning("Sitemap index %s partially processed (%d error(s))", progress.batch_url, progress.failed)
            return False
        if self.mark_processed:
            self.state.complete_batch(progress.batch_url, progress.item_urls)
        logger.info("Completed sitemap index: %s", progress.batch_url)
        return True
