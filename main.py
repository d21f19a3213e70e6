"""
Main entrypoint: FastAPI server for transaction analysis.

Env: HELIUS_API_KEY / ALCHEMY_API_KEY / SOLANA_RPC_URL, BIRDEYE_API_KEY, API_HOST, API_PORT, LOG_LEVEL, etc.

Equivalent: uvicorn backend_solview.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os

# Configure structured logging before other imports that may log
from backend_solview.solview_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Run the API server in the main thread."""
    from backend_solview.config import get_settings

    settings = get_settings()
    logger.info(
        "main_starting",
        api_host=settings.api_host,
        api_port=settings.api_port,
        rpc_providers=[name for name, _ in settings.rpc_endpoints],
    )

    import uvicorn
    from backend_solview.api_server.app import app

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
