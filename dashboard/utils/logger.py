import logging
import sys


def _with_context(msg: str, context: dict) -> str:
    if not context:
        return msg
    pairs = " ".join(f"{k}={v}" for k, v in context.items() if v is not None)
    return f"{msg} | {pairs}" if pairs else msg


class Logger:
    """
    Logger wrapper with a stdout handler and structured context.

    Usage:
        logger = Logger("rbac")
        logger.warning("Permission denied", user_id=user_id, path=path)
        -> ... | WARNING  | dashboard.rbac | Permission denied | user_id=... path=...
    """

    def __init__(self, name: str = __name__):
        self._logger = logging.getLogger(f"dashboard.{name}")
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            self._logger.addHandler(handler)
            self._logger.setLevel(logging.DEBUG)
            self._logger.propagate = False

    def info(self, msg: str, **context):
        self._logger.info(_with_context(msg, context))

    def error(self, msg: str, exc_info: bool = False, **context):
        self._logger.error(_with_context(msg, context), exc_info=exc_info)

    def warning(self, msg: str, **context):
        self._logger.warning(_with_context(msg, context))

    def debug(self, msg: str, **context):
        self._logger.debug(_with_context(msg, context))
