"""
Main entrypoint for stockfolio.

What it does:
- Loads runtime settings from `config/config.yaml`, `STOCKFOLIO_*` environment
  variables and command-line flags (in increasing priority).
- Optionally exposes Prometheus metrics (`metrics_port`).
- Builds one Ledger for the session, loads the saved portfolio when
  `autoload` is on, runs the interactive menu and saves on exit when
  `autosave` is on.

Where it is used:
- Installed as the `stockfolio` console script; also `python -m stockfolio.main`.
"""
import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .cli.menu import MenuSession
from .config.loader import load_settings
from .ledger.ledger import Ledger
from .metrics.core import start_server_safe


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stockfolio", description="Track stock holdings from a text menu")
    parser.add_argument("--config", default="config/config.yaml", help="YAML settings file")
    parser.add_argument("--file", dest="portfolio_file", help="portfolio file to load and save")
    parser.add_argument("--max-holdings", dest="max_holdings", help="holding limit, or 'none' for unbounded")
    parser.add_argument("--no-autoload", dest="autoload", action="store_false", default=None,
                        help="start with an empty portfolio")
    parser.add_argument("--no-autosave", dest="autosave", action="store_false", default=None,
                        help="do not save on exit")
    parser.add_argument("--metrics-port", dest="metrics_port", type=int, help="serve Prometheus metrics on this port")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ERROR")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if k != "config"}
    try:
        settings = load_settings(args.config, **overrides)
    except ValidationError as e:
        logging.basicConfig(level=logging.ERROR, format="%(asctime)s %(levelname)s %(message)s")
        logging.error(f"Invalid settings: {e}")
        return 2

    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(message)s")
    logging.info(f"Portfolio file: {settings.portfolio_file}, max holdings: {settings.max_holdings}")
    start_server_safe(settings.metrics_port)

    ledger = Ledger(max_holdings=settings.max_holdings, symbol_max_len=settings.symbol_max_len)
    session = MenuSession(ledger, path=settings.portfolio_file, autosave=settings.autosave)
    session.run(autoload=settings.autoload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
