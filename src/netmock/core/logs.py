import logging
import sys

import structlog


def configure_logging(level: int = logging.INFO):
    """JSON lines on stderr, for both structlog and stdlib loggers."""
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    # Configure standard logging to output the JSON string as-is
    logging.basicConfig(
        format="%(message)s",
        level=level,
        stream=sys.stderr,
    )
