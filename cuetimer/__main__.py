"""Run CueTimer as a standalone display server: python -m cuetimer."""

import argparse
import logging
import signal
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication, QTimer

from .plugin import CountdownInstance
from .settings import CONFIG_PATH, ConfigError, load_config
from .web.server import WebServer


logger = logging.getLogger("cuetimer")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="cuetimer", description=__doc__)
    parser.add_argument("--config", type=Path, default=CONFIG_PATH,
                        help="path to config.json (default: %(default)s)")
    parser.add_argument("--host", help="address to bind (overrides config)")
    parser.add_argument("--port", type=int, help="port to bind (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log at DEBUG level")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        logger.error("invalid configuration in %s: %s", args.config, exc)
        sys.exit(2)

    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName("CueTimer")
    app.setOrganizationName("CueTimer")

    instance = CountdownInstance()
    instance.init(config)

    server = WebServer(instance.surface, instance.channel)
    if not server.start(args.host or config.host, args.port or config.port):
        instance.destroy()
        sys.exit(1)

    def _teardown() -> None:
        server.stop()
        instance.destroy()

    app.aboutToQuit.connect(_teardown)

    # Python signal handlers only run when the interpreter gets control,
    # so wake it up periodically.
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    signal.signal(signal.SIGTERM, lambda *_: app.quit())
    wakeup = QTimer()
    wakeup.start(250)
    wakeup.timeout.connect(lambda: None)

    logger.info("CueTimer ready!")
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
