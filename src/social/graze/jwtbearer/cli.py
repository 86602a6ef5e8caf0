import json
import logging
import os
from logging.config import dictConfig
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False, config_file: Optional[str] = None) -> None:
    """
    Configure logging for the command line tools.

    A dictConfig JSON file named by ``config_file`` or the LOGGING_CONFIG_FILE
    environment variable replaces the default stderr handler.
    """
    config_file = config_file or os.getenv("LOGGING_CONFIG_FILE", "")

    if config_file:
        with open(config_file) as fl:
            dictConfig(json.load(fl))
        return

    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("social.graze.jwtbearer").setLevel(
        logging.DEBUG if debug else logging.INFO
    )
