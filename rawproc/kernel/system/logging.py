import logging
import sys
import io

ROOT_LOGGER = "rawproc"


class _DummyStream(io.TextIOBase):
    """
    A file-like object that discards all input.
    Keeps logging alive when sys.stdout/stderr are None (pythonw, frozen apps).
    """

    def write(self, x: str) -> int:
        return len(x)

    def flush(self) -> None:
        pass


def init_streams() -> None:
    """
    Ensures sys.stdout and sys.stderr are not None.
    """
    if sys.stdout is None:
        sys.stdout = _DummyStream()
    if sys.stderr is None:
        sys.stderr = _DummyStream()


def setup_logging(level: int = logging.INFO, stream: io.TextIOBase | None = None) -> logging.Logger:
    """
    Sets up the global logging configuration for the application.
    """
    init_streams()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    # Prevent duplicate handlers if called multiple times
    if logger.handlers:
        for existing in logger.handlers:
            existing.setLevel(level)
        return logger

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Helper to get a sub-logger for a specific module.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
