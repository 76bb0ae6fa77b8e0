import logging
import os

def setup_logging(debug: bool = False) -> None:
    """Configure logging with a debug level toggle."""
    level = logging.DEBUG if debug or os.environ.get("PAGEFLUX_DEBUG", "false").lower() == "true" else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )
    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if level == logging.DEBUG else logging.WARNING)

def get_logger(name: str) -> logging.Logger:
    """Return a logger instance with the given name."""
    return logging.getLogger(name)
