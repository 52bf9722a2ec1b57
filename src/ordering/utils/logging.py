"""Logging setup for the Ordering domain.

Protean configures structlog from the ``[logging]`` section of
``domain.toml`` when the domain is initialized. This module only tunes
the library loggers that would otherwise drown out order and stock logs.
"""

import logging

_NOISY_LOGGERS = ("protean", "protean.access.http", "uvicorn.access")


def quiet_library_loggers(level=logging.WARNING):
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


# Applied on import; ``ordering.init()`` imports every module of the domain
quiet_library_loggers()
