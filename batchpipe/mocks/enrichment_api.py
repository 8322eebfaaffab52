"""Mock enrichment service.

Echoes the posted record with `enriched=true` and a region, after a short
simulated latency; a configurable share of calls fail with HTTP 500.

Usage:
    python -m batchpipe serve-mock --port 3001
"""

import asyncio
import random
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from batchpipe.core.logging import logger


def classify_region(record: Dict[str, Any]) -> str:
    """NA for US records, INTL for everything else."""
    return "NA" if record.get("country") == "US" else "INTL"


def create_app(
    failure_rate: float = 0.10,
    latency: Tuple[float, float] = (0.2, 0.5),
    seed: Optional[int] = None,
) -> FastAPI:
    """Create the mock enrichment app.

    Args:
        failure_rate: Probability (0..1) that a call returns 500
        latency: (min, max) seconds of simulated latency on success
        seed: Seed for reproducible failures
    """
    if not 0.0 <= failure_rate <= 1.0:
        raise ValueError("failure_rate must be within [0, 1]")

    rng = random.Random(seed)
    app = FastAPI(title="enrichment-mock", version="1.0.0")

    @app.post("/enrich")
    async def enrich(request: Request):
        user = await request.json()

        if rng.random() < failure_rate:
            logger.info("mock_enrich_failed", record_id=user.get("id"))
            return JSONResponse(status_code=500, content={"error": "API timeout"})

        low, high = latency
        if high > 0:
            await asyncio.sleep(low + rng.random() * (high - low))

        return {**user, "enriched": True, "region": classify_region(user)}

    return app
