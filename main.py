"""
Main entrypoint: TrustChain verification API.

Env: SOLANA_RPC_URL, FAIRSCALE_API_URL, NOTARY_SECRET, API_HOST, API_PORT, LOG_LEVEL.

Equivalent: uvicorn backend_trustchain.api_server.server:app --host 0.0.0.0 --port 8000
"""

import os

# Configure structured JSON logging before other imports that may log
from backend_trustchain.trustchain_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Load settings, then run the FastAPI server in the main thread."""
    api_host = os.getenv("API_HOST", "0.0.0.0").strip()
    api_port = int(os.getenv("API_PORT", "8000").strip() or "8000")

    from backend_trustchain.config import get_settings
    from backend_trustchain.config.env import mask_rpc_url

    settings = get_settings()
    logger.info(
        "main_config_loaded",
        rpc=mask_rpc_url(settings.solana_rpc_url),
        notary_configured=bool(settings.notary_secret),
        notary_dry_run=settings.notary_dry_run,
    )

    from backend_trustchain.api_server.server import app
    import uvicorn

    logger.info("main_server_starting", host=api_host, port=api_port)
    uvicorn.run(app, host=api_host, port=api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
