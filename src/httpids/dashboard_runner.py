# src/httpids/dashboard_runner.py

import argparse

from httpids.config import get_settings
from httpids.dashboard.server import create_app, socketio
from httpids.log import get_logger, setup_logging
from httpids.rules.parser import load_rules

log = get_logger("dashboard")

LOOPBACK_HOSTS = frozenset({"127.0.0.1", "localhost", "::1"})


def werkzeug_allowed(host, unsafe_werkzeug=False):
    """The development server is only used on loopback unless explicitly allowed."""
    return unsafe_werkzeug or host in LOOPBACK_HOSTS


def run_dashboard(rules_path, host, port, unsafe_werkzeug=False):
    rules = load_rules(rules_path)
    app = create_app(rules)

    allowed = werkzeug_allowed(host, unsafe_werkzeug)
    if not allowed:
        # flask-socketio refuses to start Werkzeug in this case
        log.error("dashboard_refusing_public_dev_server", host=host,
                  hint="set HTTPIDS_DASHBOARD_UNSAFE_WERKZEUG=true or pass --unsafe-werkzeug")

    log.info("dashboard_starting", url=f"http://{host}:{port}", rules=len(rules))
    socketio.run(app, host=host, port=port, allow_unsafe_werkzeug=allowed)


def main(argv=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(description="HTTP signature detection dashboard")
    parser.add_argument("--rules", default=settings.rules_path, help="Rules file path")
    parser.add_argument("--host", default=settings.dashboard_host)
    parser.add_argument("--port", type=int, default=settings.dashboard_port)
    parser.add_argument("--unsafe-werkzeug", action="store_true",
                        default=settings.dashboard_unsafe_werkzeug,
                        help="Allow the development server on non-loopback addresses")
    args = parser.parse_args(argv)

    setup_logging(settings.log_level, settings.log_format)
    run_dashboard(args.rules, args.host, args.port, unsafe_werkzeug=args.unsafe_werkzeug)


if __name__ == "__main__":
    main()
