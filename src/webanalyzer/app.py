from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from analyzer.controllers.analysis_controller import analyze_page
from analyzer.errors import AnalysisError
from analyzer.model import AnalyzerSettings
from analyzer.services.generate_default_user_agent_service import generate_default_user_agent
from analyzer.utils.url_utils import UrlUtils
from webanalyzer.core.managers.config_manager import config_manager
from webanalyzer.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID_URL = 1
EXIT_CODES = {
    "fetch-bad-status": 2,
    "fetch-transport-error": 3,
    "parse-error": 4,
    "timeout": 5,
}


def _configure_logging() -> None:
    configure_logger(
        config_manager.get_nested("debug.level", "INFO"),
        config_manager.get_nested("debug.module_levels"),
        config_manager.get_nested("debug.silenced_loggers"),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webanalyzer",
        description="Analyse a single web page: HTML version, title, headings, links and login forms."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyse one page and print the report as JSON.")
    analyze.add_argument("url", help="Absolute http(s) URL of the page (e.g. https://example.com)")
    analyze.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    analyze.add_argument("--progress", action="store_true", help="Show a progress bar while probing links")

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None, help="Host interface to bind to (default: server.host)")
    serve.add_argument("--port", type=int, default=None, help="Port to bind to (default: server.port)")
    return parser


def run_analyze(args: argparse.Namespace) -> int:
    if not UrlUtils.is_valid_target_url(args.url):
        sys.stderr.write(json.dumps({"error": "invalid-url", "message": f"invalid URL: {args.url}"}) + "\n")
        return EXIT_INVALID_URL

    settings = AnalyzerSettings.from_config(config_manager.get_nested("analyzer", {}))
    if args.progress:
        settings = settings.model_copy(update={"show_progress": True})
    user_agent = generate_default_user_agent(config_manager.get_nested("user_agent.chrome_version"))

    try:
        report = analyze_page(args.url.strip(), settings, user_agent)
    except AnalysisError as e:
        sys.stderr.write(json.dumps(e.to_dict()) + "\n")
        return EXIT_CODES.get(e.kind, 1)

    print(report.model_dump_json(indent=2 if args.pretty else None))
    return EXIT_OK


def run_serve(args: argparse.Namespace) -> int:
    from webanalyzer.server.app import create_app, API_PREFIX

    host = args.host or config_manager.get_nested("server.host", "0.0.0.0")
    port = args.port or int(config_manager.get_nested("server.port", 8080))

    app = create_app()
    metrics_port = int(config_manager.get_nested("server.metrics_port", 0) or 0)
    if metrics_port:
        app.config["METRICS"].serve(metrics_port, host)
    logger.info("Serving %s on http://%s:%d", API_PREFIX, host, port)
    app.run(host=host, port=port, debug=False, use_reloader=False, threaded=True)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging()

    if args.command == "analyze":
        return run_analyze(args)
    return run_serve(args)


if __name__ == "__main__":
    raise SystemExit(main())
