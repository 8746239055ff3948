import logging
from typing import Dict

from jobharvest.core.errors import UnknownSourceError
from jobharvest.core.models import (
    SOURCE_GENERIC,
    SOURCE_INDEED,
    SOURCE_LINKEDIN,
    SOURCE_REMOTEOK,
    SOURCE_WWR,
    normalize_source,
)
from jobharvest.services.extractors.base import SourceAdapter
from jobharvest.services.extractors.generic import GenericAdapter
from jobharvest.services.extractors.indeed import IndeedAdapter
from jobharvest.services.extractors.linkedin import LinkedInAdapter
from jobharvest.services.extractors.remoteok import RemoteOKAdapter
from jobharvest.services.extractors.weworkremotely import WeWorkRemotelyAdapter

logger = logging.getLogger("extract")

ADAPTERS: Dict[str, type] = {
    SOURCE_LINKEDIN: LinkedInAdapter,
    SOURCE_INDEED: IndeedAdapter,
    SOURCE_WWR: WeWorkRemotelyAdapter,
    SOURCE_REMOTEOK: RemoteOKAdapter,
    SOURCE_GENERIC: GenericAdapter,
}


def get_adapter(source: str, *, strict: bool = False) -> SourceAdapter:
    """
    Resolve a source name (aliases allowed) to a fresh adapter instance.

    Unknown names fall back to the generic adapter unless ``strict``.
    """
    key = normalize_source(source)
    cls = ADAPTERS.get(key)
    if cls is None:
        if strict:
            raise UnknownSourceError(source)
        logger.info(f"[extract] no adapter for source={source!r}, using {SOURCE_GENERIC}")
        cls = GenericAdapter
    return cls()
