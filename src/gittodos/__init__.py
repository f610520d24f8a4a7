"""gittodos - attribute TODO markers to the commits, tags and authors behind them."""

from gittodos.logging_config import configure_default_logging

__version__ = "0.1.0"

configure_default_logging()
