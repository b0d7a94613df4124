import logging
import sys

_QUIET = ("httpx", "httpcore")


def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Configure the root logger with a single stderr handler.

    Call this once, early, from an entry point. Chatty HTTP client libraries
    are held at WARNING so request lines don't drown our own messages.
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(handler)

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
