#!/usr/bin/env python3

import sys

from rhythmo.client import RhythmoClient
from rhythmo.config import ConfigStore, load_env_file
from rhythmo.exceptions import ConfigurationError
from rhythmo.logging_config import setup_logging
from rhythmo.messages import set_language
from rhythmo.metrics import Metrics
from rhythmo.resolver import TrackResolver
from rhythmo.service import MusicService


def main() -> int:
    # Load environment variables early
    load_env_file()
    config = ConfigStore.load()
    logger = setup_logging(config.as_dict())
    set_language(config.get("language", "en"))

    try:
        token = config.token
    except ConfigurationError as e:
        logger.error("Token missing: %s", e)
        return 1

    metrics = Metrics()
    service = MusicService(config, resolver=TrackResolver.from_config(config, metrics), metrics=metrics)
    client = RhythmoClient(service)
    logger.info("Starting Rhythmo %s (prefix=%r)", service.version, config.prefix)
    try:
        # discord.py installs its own handler on the root logger unless told not to
        client.run(token, log_handler=None)
    except Exception as e:
        logger.exception("Bot terminated with exception: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
