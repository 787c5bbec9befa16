# Downloader middlewares.
#
# See documentation in:
# https://docs.scrapy.org/en/latest/topics/downloader-middleware.html
import asyncio
import logging

from scrapy.downloadermiddlewares.retry import get_retry_request
from scrapy.exceptions import IgnoreRequest

logger = logging.getLogger(__name__)


class FixedDelayRetryMiddleware:
    """Retry transport errors and HTTP errors after a fixed pause.

    Replaces Scrapy's RetryMiddleware (which retries immediately). Once the
    retries are exhausted the failure reaches the request errback.
    """

    def __init__(self, max_retry_times: int, retry_delay: float):
        self.max_retry_times = max_retry_times
        self.retry_delay = retry_delay

    @classmethod
    def from_crawler(cls, crawler):
        return cls(
            crawler.settings.getint("RETRY_TIMES"),
            crawler.settings.getfloat("RETRY_DELAY"),
        )

    async def _retry(self, request, reason, spider):
        retry = get_retry_request(
            request,
            spider=spider,
            reason=reason,
            max_retry_times=self.max_retry_times,
            priority_adjust=0,
        )
        if retry is not None and self.retry_delay > 0:
            logger.info("Retrying %s in %.0fs (%s)", request.url, self.retry_delay, reason)
            await asyncio.sleep(self.retry_delay)
        return retry

    async def process_response(self, request, response, spider):
        if response.status < 400 or request.meta.get("dont_retry"):
            return response
        retry = await self._retry(request, f"HTTP {response.status}", spider)
        return retry or response

    async def process_exception(self, request, exception, spider):
        if isinstance(exception, IgnoreRequest) or request.meta.get("dont_retry"):
            return None
        return await self._retry(request, exception.__class__.__name__, spider)
