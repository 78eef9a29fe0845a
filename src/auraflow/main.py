"""Application entry point for the Aura Flow auth server."""

from auraflow.app import App
from auraflow.config import Config
from auraflow.logging import setup_logging
from auraflow.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
