"""
Lead Scoring Engine - Main Entry Point
======================================
Run this file to start the FastAPI server.

Usage:
    python main.py                    # Start server on port 8000
    python main.py --port 8080        # Start server on custom port
    python main.py --reload           # Start with auto-reload (dev mode)

API Documentation:
    http://localhost:8000/docs        # Swagger UI
    http://localhost:8000/redoc       # ReDoc
"""

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from lead_scoring.config.settings import API_CONFIG, LOGGING_CONFIG
from lead_scoring.logging_setup import configure_logging

logger = logging.getLogger("lead_scoring.main")


def main():
    parser = argparse.ArgumentParser(description="Lead Scoring Engine API Server")
    parser.add_argument(
        "--host",
        type=str,
        default=API_CONFIG["host"],
        help=f"Host to bind the server to (default: {API_CONFIG['host']})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=API_CONFIG["port"],
        help=f"Port to run the server on (default: {API_CONFIG['port']})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )

    args = parser.parse_args()

    configure_logging()
    logger.info(f"Lead Scoring Engine starting on http://{args.host}:{args.port}")
    logger.info(f"API docs: http://localhost:{args.port}/docs")

    uvicorn.run(
        "lead_scoring.api.endpoints:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_level=LOGGING_CONFIG["level"].lower(),
    )


if __name__ == "__main__":
    main()
