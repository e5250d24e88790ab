"""
Main entrypoint: run the buy-alert agent (stream + pipeline + dispatcher) until SIGINT/SIGTERM.

Env: SOLANA_RPC_URL, SOLANA_WS_URL (or HELIUS_API_KEY), DB_PATH or BUYBOT_DB_URL,
TELEGRAM_BOT_TOKEN, PRICE_API_URL, LOG_LEVEL, LOG_FORMAT, etc. See backend_buybot.config.settings.
"""

import sys

# Configure structured JSON logging before other imports that may log
from backend_buybot.buybot_logging import get_logger

logger = get_logger("main")


def main() -> None:
    from backend_buybot.agent_worker.worker import run_worker
    from backend_buybot.config import get_settings
    from backend_buybot.core.exceptions import ConfigError

    try:
        settings = get_settings()
    except ConfigError as e:
        logger.error("main_config_error", message=str(e))
        sys.exit(1)

    run_worker(settings)


if __name__ == "__main__":
    main()
