"""Application entry point for the Notekeeper backend server."""

from notekeeper.app import App
from notekeeper.config import Config
from notekeeper.logging import setup_logging
from notekeeper.web.runner import run_server


def main() -> None:
    config = Config()  # type: ignore[call-arg]
    setup_logging(config.debug)
    run_server(App(config), config)


if __name__ == "__main__":
    main()
