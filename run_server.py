#!/usr/bin/env python3
"""FastAPI server entry point for the catalog pipeline."""

import uvicorn
from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Mandela Catalog Pipeline Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--workers", type=int, default=1, help="Number of worker processes")

    args = parser.parse_args()

    uvicorn.run(
        "server.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=None if args.reload else args.workers,
        log_level="info",
    )
