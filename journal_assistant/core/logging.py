import logging

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "asyncio")


def configure_logging(log_level: str) -> None:
    """Configure process-wide logging for the journal assistant backend."""

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Client libraries log every request at DEBUG; keep them at WARNING unless asked.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
