from typing import Optional

import scrapy
from lxml import etree
from scrapy.exceptions import CloseSpider

from juportal.correlator import build_mapping
from juportal.items import BatchOutcome, SitemapOutcome
from juportal.judgement import parse_judgement_html
from juportal.models import Skipped
from juportal.sitemap import parse_robots, parse_sitemap_index, parse_sitemap_xml
from juportal.state import CrawlContext
from juportal.store import open_stores
from juportal.utility import date_from_sitemap_url, unique_preserve


class JuportalSpider(scrapy.Spider):
    """Fetch phase: robots.txt -> sitemap indexes -> judgement sitemaps -> pages.

    Callbacks only read the crawl state; every outcome, including failures, is
    yielded as an item and committed by the pipeline.

    Targeted run on one sitemap or sitemap index (state is left untouched)::

        scrapy crawl juportal -a url=https://juportal.be/.../sitemap_index_1.xml
    """

    name = "juportal"
    allowed_domains = ["juportal.be"]

    def __init__(self, url: Optional[str] = None, courts: Optional[str] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.target_url = url
        self.courts_arg = courts
        self.courts = ("CASS",)
        self.context: Optional[CrawlContext] = None

    @classmethod
    def from_crawler(cls, crawler, *args, **kwargs):
        spider = super().from_crawler(crawler, *args, **kwargs)
        courts = spider.courts_arg or crawler.settings.get("JUPORTAL_COURTS") or "CASS"
        parsed = tuple(c.strip().upper() for c in str(courts).split(",") if c.strip())
        if parsed:
            spider.courts = parsed
        else:
            spider.logger.warning("Invalid court list %r; defaulting to CASS.", courts)
        data_store, meta_store = open_stores(crawler.settings)
        spider.context = CrawlContext.load(data_store, meta_store, mark_processed=spider.target_url is None)
        return spider

    def start_requests(self):
        if self.target_url:
            self.logger.info("Targeted run: %s", self.target_url)
            if "sitemap_index" in self.target_url:
                yield self.index_request(self.target_url)
            else:
                yield self.sitemap_request(self.target_url, None)
            return

        robots_url = self.settings.get("JUPORTAL_ROBOTS_URL")
        self.logger.info("Fetching robots.txt from %s", robots_url)
        yield scrapy.Request(robots_url, callback=self.parse, errback=self.on_robots_error, dont_filter=True)

    def index_request(self, url, priority=0):
        return scrapy.Request(
            url,
            callback=self.parse_index,
            errback=self.on_index_error,
            cb_kwargs={"batch_url": url},
            priority=priority,
            dont_filter=True,
        )

    def sitemap_request(self, url, batch_url, priority=0):
        return scrapy.Request(
            url,
            callback=self.parse_sitemap,
            errback=self.on_sitemap_error,
            cb_kwargs={"batch_url": batch_url},
            priority=priority,
            dont_filter=True,
        )

    def parse(self, response, **kwargs):
        index_urls = parse_robots(response.text)
        self.logger.info("Found %d sitemap index URLs in robots.txt", len(index_urls))
        state = self.context.state
        for i, url in enumerate(index_urls):
            if state.is_batch_done(url):
                self.logger.debug("Skipping (already processed): %s", date_from_sitemap_url(url))
                continue
            # most recent index first
            yield self.index_request(url, priority=len(index_urls) - i)

    def parse_index(self, response, batch_url, **kwargs):
        item_urls = unique_preserve(parse_sitemap_index(response.text))
        if self.context.mark_processed:
            pending = [u for u in item_urls if not self.context.state.is_item_done(u)]
        else:
            pending = list(item_urls)
        self.logger.info("Found %d sitemaps for %s (%d pending)", len(item_urls), date_from_sitemap_url(batch_url), len(pending))

        yield BatchOutcome(kind="open", batch_url=batch_url, item_urls=item_urls, pending_urls=pending)
        for url in pending:
            yield self.sitemap_request(url, batch_url, priority=response.request.priority)

    def parse_sitemap(self, response, batch_url=None, **kwargs):
        try:
            result = parse_sitemap_xml(response.text, response.url, self.courts)
        except (ValueError, etree.LxmlError) as e:
            self.logger.error("Failed to parse sitemap %s: %s", response.url, e)
            yield SitemapOutcome(kind="error", batch_url=batch_url, item_url=response.url, reason=str(e))
            return

        if result is None:
            self.logger.warning("Empty sitemap: %s", response.url)
            yield SitemapOutcome(kind="empty", batch_url=batch_url, item_url=response.url)
            return

        if isinstance(result, Skipped):
            self.logger.debug("Skipped (%s)", result.reason)
            yield SitemapOutcome(kind="skip", batch_url=batch_url, item_url=response.url, reason=result.reason)
            return

        judgement = result
        self.logger.info(
            "%s | %s | %s | %s | abstracts FR=%d NL=%d | legal bases: %d",
            judgement.court, judgement.ecli, judgement.date, judgement.role_number or "N/A",
            len(judgement.abstracts_fr), len(judgement.abstracts_nl), len(judgement.legal_bases),
        )
        if not judgement.has_citations:
            self.logger.warning("No legal bases found for %s; skipping data export", judgement.ecli)
            yield SitemapOutcome(kind="no-citations", batch_url=batch_url, item_url=response.url,
                                 parse_errors=judgement.unrecognized)
            return

        needs_page = judgement.abstract_count > 1 or bool(judgement.unresolved)
        if needs_page and judgement.url:
            self.logger.info("%s: downloading judgement page %s", judgement.ecli, judgement.url)
            yield scrapy.Request(
                judgement.url,
                callback=self.parse_judgement,
                errback=self.on_judgement_error,
                cb_kwargs={"batch_url": batch_url, "item_url": response.url, "judgement": judgement},
                priority=response.request.priority,
                dont_filter=True,
            )
            return

        yield self.save_outcome(batch_url, response.url, judgement, None)

    def parse_judgement(self, response, batch_url, item_url, judgement, **kwargs):
        fiches = parse_judgement_html(response.text)
        self.logger.info("Parsed %d fiches from judgement page of %s", len(fiches), judgement.ecli)
        page_errors = [text for f in fiches for text in f.unrecognized]
        yield self.save_outcome(batch_url, item_url, judgement, fiches, page_errors)

    def save_outcome(self, batch_url, item_url, judgement, fiches, page_errors=()):
        return SitemapOutcome(
            kind="save",
            batch_url=batch_url,
            item_url=item_url,
            judgement=judgement,
            mapping=build_mapping(judgement, fiches),
            parse_errors=unique_preserve(list(judgement.unrecognized) + list(page_errors)),
        )

    def on_judgement_error(self, failure):
        kw = failure.request.cb_kwargs or {}
        judgement = kw.get("judgement")
        self.logger.warning("Judgement page failed for %s (%s). Using sitemap data only.",
                            judgement.ecli if judgement else "UNKNOWN",
                            failure.value.__class__.__name__)
        self.crawler.stats.inc_value("juportal/judgement_page_failed")
        if judgement is None:
            return
        yield self.save_outcome(kw.get("batch_url"), kw.get("item_url"), judgement, None)

    def on_sitemap_error(self, failure):
        request = failure.request
        self.logger.error("Failed to fetch sitemap %s: %s", request.url, failure.value)
        self.crawler.stats.inc_value("juportal/sitemap_failed")
        yield SitemapOutcome(kind="error", batch_url=(request.cb_kwargs or {}).get("batch_url"),
                             item_url=request.url, reason=str(failure.value))

    def on_index_error(self, failure):
        request = failure.request
        self.logger.error("Failed to fetch sitemap index %s: %s", request.url, failure.value)
        self.crawler.stats.inc_value("juportal/index_failed")
        yield BatchOutcome(kind="error", batch_url=request.url, reason=str(failure.value))

    def on_robots_error(self, failure):
        self.logger.critical("Cannot fetch robots.txt: %s", failure.value)
        raise CloseSpider("robots_unavailable")
