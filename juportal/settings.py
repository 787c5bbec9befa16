# Scrapy settings for the juportal project
#
# Values can be overridden from the environment so scheduled runs need no
# code change. See documentation in:
# https://docs.scrapy.org/en/latest/topics/settings.html
import os
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent

BOT_NAME = "juportal"

SPIDER_MODULES = ["juportal.spiders"]
NEWSPIDER_MODULE = "juportal.spiders"

USER_AGENT = os.getenv("JUPORTAL_USER_AGENT", "juportal-crawler (+https://juportal.be)")

# robots.txt is the crawl entry point, fetched by the spider itself
ROBOTSTXT_OBEY = False

JUPORTAL_ROBOTS_URL = os.getenv("JUPORTAL_ROBOTS_URL", "https://juportal.be/robots.txt")
JUPORTAL_COURTS = os.getenv("JUPORTAL_COURTS", "CASS")

# Fetch phase: at most this many sitemap / judgement pages in flight
CONCURRENT_REQUESTS = int(os.getenv("JUPORTAL_CONCURRENCY", "5"))
CONCURRENT_REQUESTS_PER_DOMAIN = CONCURRENT_REQUESTS
DOWNLOAD_TIMEOUT = int(os.getenv("JUPORTAL_TIMEOUT", "30"))

# 10 attempts in total, 5 s apart
RETRY_ENABLED = False
RETRY_TIMES = int(os.getenv("JUPORTAL_RETRY_TIMES", "9"))
RETRY_DELAY = float(os.getenv("JUPORTAL_RETRY_DELAY", "5"))

DOWNLOADER_MIDDLEWARES = {
    "juportal.middlewares.FixedDelayRetryMiddleware": 550,
}

# Commit phase: items are committed one at a time, in arrival order
ITEM_PIPELINES = {
    "juportal.pipelines.CommitPipeline": 300,
}

STORE_BACKEND = os.getenv("STORE_BACKEND", "json")
DATA_DIR = os.getenv("DATA_DIR", str(ROOT_DIR / "data"))
STATE_DIR = os.getenv("STATE_DIR", str(ROOT_DIR))
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "juportal")
MONGO_DATA_COLLECTION = os.getenv("MONGO_DATA_COLLECTION", "citations")
MONGO_META_COLLECTION = os.getenv("MONGO_META_COLLECTION", "meta")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

REQUEST_FINGERPRINTER_IMPLEMENTATION = "2.7"
TWISTED_REACTOR = "twisted.internet.asyncioreactor.AsyncioSelectorReactor"
FEED_EXPORT_ENCODING = "utf-8"
