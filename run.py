"""
Run script for starting the AI Call Receptionist server.

This script configures and starts the FastAPI server that owns the local
microphone and speaker and bridges them to the Gemini Live API.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys
from pathlib import Path

import dotenv
import uvicorn

sys.path.append(str(Path(__file__).parent))

dotenv.load_dotenv(Path(__file__).parent / ".env")

from receptionist.config.logging_config import configure_logging  # noqa: E402

# Configure logging
logger = configure_logging()


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the AI Call Receptionist server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to run the server on (default: 8000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main():
    """Main entry point for starting the server."""
    args = parse_args()
    configure_logging(args.log_level)

    if not (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")):
        logger.error("GEMINI_API_KEY environment variable not set")
        print("Error: GEMINI_API_KEY environment variable is required")
        print("Set it in your environment or in a .env file next to run.py")
        sys.exit(1)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")

    uvicorn.run(
        "receptionist.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
