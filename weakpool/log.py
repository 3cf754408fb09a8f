import logging


def get_contextual_logger(name: str) -> logging.Logger:
    """
    Get the logger for the current context.
    In Prefect workflows, uses get_run_logger().
    Outside Prefect context, falls back to the named module logger.
    """
    try:
        from prefect import get_run_logger

        return get_run_logger()  # type: ignore[return-value]
    except (ImportError, RuntimeError):
        # Not in Prefect context or Prefect not installed
        return logging.getLogger(name)
