class JobHarvestError(Exception):
    """Base class for errors raised by the acquisition pipeline."""


class InvalidPayloadError(JobHarvestError, ValueError):
    """Ingestion input was rejected before any record was touched."""


class CrawlStateError(JobHarvestError):
    """A crawl state-machine transition is not allowed from the current state."""


class UnknownSourceError(JobHarvestError, KeyError):
    pass
