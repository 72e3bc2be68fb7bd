"""Logging setup for applications embedding fluxcmd.

Library modules only create module-level loggers; configuring handlers is
left to the host application through ``configure_logging``.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging at the given level."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    # Registration chatter is only useful when debugging
    if level.upper() != "DEBUG":
        logging.getLogger("fluxcmd.tools.registry").setLevel(logging.WARNING)
