import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False):
    """
    Sends log records to stderr through Rich. stdout is reserved for the
    generated command and the model's answers.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    if not any(isinstance(h, RichHandler) for h in root_logger.handlers):
        rich_handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
            rich_tracebacks=True,
        )
        root_logger.addHandler(rich_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
