# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import logging
from os import getenv
from .utility import MultiLineFormatter, GunicornWorkerFilter

# Configure logging
level = (logging.DEBUG if getenv("FLASK_ENV") == "development" or getenv("DEBUG_LOGGING") != None else logging.INFO)

formatter = MultiLineFormatter('[%(worker_id)s] %(asctime)-21s %(levelname)-8s %(name)-12s | %(message)s', datefmt="%Y-%m-%d %H:%M:%S")
handler = logging.StreamHandler()
handler.setFormatter(formatter)
handler.addFilter(GunicornWorkerFilter())

logger = logging.getLogger("postpal")
logger.setLevel(level)
logger.propagate = False  # Keep postpal output out of the root logger
if not any(h is handler for h in logger.handlers):
    logger.addHandler(handler)

def set_log_level(verbose: bool):
    """Switch every postpal logger between INFO and DEBUG."""
    new_level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(new_level)
    for name in list(logging.root.manager.loggerDict.keys()):
        if name.startswith("postpal."):
            logging.getLogger(name).setLevel(logging.NOTSET)  # inherit from "postpal"
    logger.debug("Log level set to %s", logging.getLevelName(new_level))
