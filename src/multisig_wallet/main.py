"""Application entry point for the ``multisig-wallet`` console script."""

from __future__ import annotations

import os
import sys

from multisig_wallet.config.settings import AppConfig
from multisig_wallet.tools.multisig_tool import main as tool_main


def main() -> None:
    """Load configuration and run the multisig tool."""
    config_path = os.getenv("MULTISIG_CONFIG_PATH", "")
    config = AppConfig.from_yaml(config_path) if config_path else AppConfig()
    sys.exit(tool_main(sys.argv[1:], config=config))


if __name__ == "__main__":
    main()
