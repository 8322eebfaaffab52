"""Batch routes for batchpipe - start a batch run and wait for its result."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from batchpipe.api.dependencies import get_batch_processor
from batchpipe.core.batch import BatchProcessor
from batchpipe.core.errors import BatchCancelledError, BatchFailure
from batchpipe.models import BatchRequest

router = APIRouter(tags=["Batches"])


@router.post("/batches")
async def run_batch(
    request_data: BatchRequest,
    processor: BatchProcessor = Depends(get_batch_processor),
):
    """Run a batch over a local source file.

    - **source_path**: Newline-delimited source file
    - **chunk_size**: Eager fan-out, chunks processed concurrently
    - **page_size**: Cursor loop, one page at a time
    - **batch_id**: Optional batch identifier
    """
    try:
        result = await processor.run(request_data.to_input(), batch_id=request_data.batch_id)
    except BatchFailure as e:
        return JSONResponse(
            status_code=502,
            content={
                "success": False,
                "batch_id": e.batch_id,
                "error": str(e),
                "failed_units": [
                    {"task_id": err.task_id, "attempts": err.attempts, "error": str(err.last_error)}
                    for err in e.errors
                ],
            },
        )
    except BatchCancelledError as e:
        return JSONResponse(status_code=409, content={"success": False, "error": str(e)})

    return {"success": True, **result.to_dict()}
