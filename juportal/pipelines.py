# Commit phase of the crawl.
#
# Scrapy hands items to the pipeline one at a time and process_item is
# synchronous, so every store write below is serialized across all the
# concurrently fetched sitemaps.
# See: https://docs.scrapy.org/en/latest/topics/item-pipeline.html
import logging

from itemadapter import ItemAdapter

from juportal.items import BatchOutcome
from juportal.store import append_parse_errors, append_unresolved, merge_judgement

logger = logging.getLogger(__name__)


class CommitPipeline:
    def __init__(self):
        self.context = None

    def open_spider(self, spider):
        self.context = spider.context

    def close_spider(self, spider):
        counters = self.context.counters
        logger.info("Judgements saved: %d | skipped (court/conclusion): %d | errors: %d",
                    counters.saved, counters.skipped, counters.errors)
        logger.info("SUMMARY: %s", self.summary())
        closed = set()
        for store in (self.context.data_store, self.context.meta_store):
            if store is not None and id(store) not in closed:
                store.close()
                closed.add(id(store))

    def summary(self):
        counters = self.context.counters
        if counters.saved == 0 and counters.errors == 0:
            return "Nothing new found."
        parts = [f"{counters.saved} judgement(s) saved"]
        if counters.errors:
            parts.append(f"{counters.errors} error(s)")
        return ", ".join(parts)

    def process_item(self, item, spider):
        adapter = ItemAdapter(item)
        if isinstance(item, BatchOutcome):
            self.commit_batch(adapter, spider)
        else:
            self.commit_sitemap(adapter, spider)
        return item

    def _error(self, spider):
        self.context.counters.errors += 1
        spider.crawler.stats.inc_value("juportal/errors")

    def commit_batch(self, adapter, spider):
        batch_url = adapter.get("batch_url")
        if adapter.get("kind") == "error":
            self._error(spider)
            return
        progress = self.context.open_batch(batch_url, adapter.get("item_urls") or [], adapter.get("pending_urls") or [])
        if self.context.close_if_done(progress):
            self.context.save_state()

    def commit_sitemap(self, adapter, spider):
        ctx = self.context
        kind = adapter.get("kind")
        item_url = adapter.get("item_url")
        ok = kind != "error"
        if not ok:
            self._error(spider)
        else:
            try:
                append_parse_errors(ctx.meta_store, item_url, adapter.get("parse_errors"))
                if kind == "skip":
                    ctx.counters.skipped += 1
                    spider.crawler.stats.inc_value("juportal/skipped")
                elif kind == "save":
                    judgement = adapter.get("judgement")
                    mapping = adapter.get("mapping") or []
                    append_unresolved(ctx.meta_store, judgement, mapping)
                    written = merge_judgement(ctx.data_store, judgement, mapping)
                    ctx.counters.saved += 1
                    spider.crawler.stats.inc_value("juportal/saved")
                    logger.info("Saved data for %s (%d record(s))", judgement.ecli, written)
            except Exception:
                logger.exception("Failed to save data for %s", item_url)
                self._error(spider)
                ok = False

        ctx.settle(adapter.get("batch_url"), item_url, ok)
        ctx.save_state()
