"""Log daemon entry point.

Usage: python -m logvault.daemon [CONFIG_PATH]

Reads the YAML config (argument, LOGVAULT_CONFIG, or ./config.yaml),
then runs retention and bus ingest until SIGINT/SIGTERM.
Exit status: 0 on graceful shutdown, 1 on configuration errors.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from logvault.config.settings import load_config
from logvault.daemon.service import LogDaemon
from logvault.diagnostics import setup_logging
from logvault.errors import ConfigError

logger = logging.getLogger("logvault")


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    config_path = argv[0] if argv else None

    try:
        config = load_config(config_path)
    except ConfigError as e:
        setup_logging()
        logger.error("Config error: %s", e)
        sys.exit(1)

    setup_logging(config.logging.level, config.logging.diagnostic_file)
    asyncio.run(LogDaemon(config).run())


if __name__ == "__main__":
    main()
