"""Assembly of the web application and the service entry point."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

from flask import Flask

from mailtemp.api import APIHandler
from mailtemp.config import load_config
from mailtemp.factory import create_storage
from mailtemp.generator import EmailGenerator
from mailtemp.receiver import EmailReceiver
from mailtemp.web import WebHandler

_log = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = "web/templates"
DEFAULT_STATIC_DIR = "web/static"


def create_app(
    generator: EmailGenerator,
    receiver: EmailReceiver,
    template_dir: str | Path = DEFAULT_TEMPLATE_DIR,
    static_dir: str | Path = DEFAULT_STATIC_DIR,
) -> Flask:
    """Build the Flask application serving the API and the web page."""
    app = Flask(__name__, static_folder=None)
    APIHandler(generator, receiver).register(app)
    WebHandler(template_dir, static_dir).register(app)
    return app


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Temporary mailbox service.")
    parser.add_argument("--template-dir", default=DEFAULT_TEMPLATE_DIR)
    parser.add_argument("--static-dir", default=DEFAULT_STATIC_DIR)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the SMTP receiver and the web server until interrupted."""
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    config = load_config()
    storage = create_storage(config)
    try:
        generator = EmailGenerator(config.mail_domain, storage)
        receiver = EmailReceiver(config, generator, storage)
        receiver.connect()
        try:
            if config.mail_domain in ("example.com", ""):
                _log.warning(
                    "Using the default mail domain; outside servers may not deliver to it."
                )
                _log.warning("Set MAIL_DOMAIN to a domain you control.")
            receiver.start_listening()
            _log.info("Mail listener started")

            try:
                app = create_app(generator, receiver, args.template_dir, args.static_dir)
            except FileNotFoundError as exc:
                _log.error("Cannot load web templates: %s", exc)
                return 1

            _log.info("Web server starting on http://localhost:%d", config.web_port)
            try:
                app.run(
                    host="0.0.0.0",
                    port=config.web_port,
                    debug=config.debug_mode,
                    use_reloader=False,
                )
            except OSError as exc:
                _log.error("Web server failed to start: %s", exc)
                return 1
        finally:
            receiver.close()
    finally:
        storage.close()
    return 0