"""
Review Ledger CLI
Command-line interface for starting the Review Ledger service
"""

import argparse
import uvicorn
import logging

from review_ledger.config.settings import configure_logging, settings

logger = logging.getLogger(__name__)


def main():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(description="Review Ledger - prediction review and verification metrics")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Port to bind (default: {settings.PORT})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL.lower(),
        choices=["debug", "info", "warning", "error"],
        help="Log level",
    )

    args = parser.parse_args()

    configure_logging(args.log_level)
    logger.info(f"Starting Review Ledger on {args.host}:{args.port}")

    uvicorn.run(
        "review_ledger.app_factory:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level
    )


if __name__ == "__main__":
    main()
