"""Main entry point for the batchpipe API.

Usage:
    Development: uvicorn batchpipe.main:app --reload --port 8000
    Production: uvicorn batchpipe.main:app --host 0.0.0.0 --port 8000
"""

from batchpipe.api import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "batchpipe.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
