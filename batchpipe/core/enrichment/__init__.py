"""Record enrichment for batchpipe."""

from batchpipe.core.enrichment.client import EnrichmentClient
from batchpipe.core.enrichment.executor import EnrichmentExecutor

__all__ = ["EnrichmentClient", "EnrichmentExecutor"]
