"""System routes for batchpipe."""

import asyncio
import os
from datetime import datetime, timezone
from typing import Any, Dict

import httpx
from fastapi import APIRouter, Depends

from batchpipe.api.dependencies import get_batch_processor
from batchpipe.core.batch import BatchProcessor

router = APIRouter(tags=["System"])


async def check_enrichment_service(processor: BatchProcessor) -> Dict[str, Any]:
    """Any HTTP answer from the enrichment base URL counts as reachable."""
    client = processor.executor.client
    try:
        response = await asyncio.wait_for(client.http.get("/"), timeout=2.0)
        return {"status": "healthy", "base_url": client.config.base_url, "http_status": response.status_code}
    except (asyncio.TimeoutError, httpx.TimeoutException):
        return {"status": "timeout", "error": "Request timed out after 2s"}
    except httpx.HTTPError as e:
        return {"status": "unavailable", "error": str(e)[:100]}


def check_output_root(processor: BatchProcessor) -> Dict[str, Any]:
    root = processor.writer.output_root
    if root.is_dir() and os.access(root, os.W_OK):
        return {"status": "healthy", "path": str(root)}
    return {"status": "unavailable", "path": str(root), "error": "not a writable directory"}


@router.get("/health")
async def health_check(processor: BatchProcessor = Depends(get_batch_processor)):
    """Health check. Returns service status and dependency health."""
    enrichment = await check_enrichment_service(processor)
    output = check_output_root(processor)

    all_healthy = enrichment["status"] == "healthy" and output["status"] == "healthy"

    return {
        "status": "healthy" if all_healthy else "degraded",
        "service": "batchpipe",
        "version": "1.0.0",
        "dependencies": {"enrichment": enrichment, "output": output},
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
