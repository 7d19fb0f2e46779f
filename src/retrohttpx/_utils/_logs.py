import logging
import sys
from typing import Optional

logger: logging.Logger = logging.getLogger("retrohttpx")


def setup_logging(should_debug: Optional[bool] = None) -> None:
    """Attach a stderr handler to the ``retrohttpx`` logger.

    Calling it more than once does not add duplicate handlers.
    """
    level = logging.DEBUG if should_debug else logging.INFO
    logger.setLevel(level)

    if not any(getattr(h, "_retrohttpx", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        handler._retrohttpx = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if should_debug else logging.WARNING)
