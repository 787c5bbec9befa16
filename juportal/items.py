# Items passed from the fetch phase (spider) to the commit phase (pipeline).
#
# See documentation in:
# https://docs.scrapy.org/en/latest/topics/items.html

import scrapy


class SitemapOutcome(scrapy.Item):
    kind = scrapy.Field()              # error | empty | skip | no-citations | save
    batch_url = scrapy.Field()         # sitemap index the sitemap belongs to (None on targeted runs)
    item_url = scrapy.Field()          # sitemap URL
    reason = scrapy.Field()            # skip reason / error message
    judgement = scrapy.Field()         # models.Judgement
    mapping = scrapy.Field()           # [models.FicheMapping]
    parse_errors = scrapy.Field()      # raw citation texts no pattern matched


class BatchOutcome(scrapy.Item):
    kind = scrapy.Field()              # open | error
    batch_url = scrapy.Field()         # sitemap index URL
    item_urls = scrapy.Field()         # every sitemap listed by the index
    pending_urls = scrapy.Field()      # the ones requested in this run
    reason = scrapy.Field()
