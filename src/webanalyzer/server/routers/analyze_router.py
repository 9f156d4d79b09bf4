import asyncio
import logging

from flask import Blueprint, current_app, request

from analyzer.controllers.analysis_controller import AnalysisController
from analyzer.errors import AnalysisError
from analyzer.utils.url_utils import UrlUtils
from webanalyzer.server.response import error, success

logger = logging.getLogger(__name__)

analyze_router = Blueprint('analyze_router', __name__)

# How analysis failures surface to HTTP clients.
ERROR_STATUS_CODES = {
    "timeout": 504,
    "fetch-transport-error": 502,
    "fetch-bad-status": 502,
    "parse-error": 500,
}


def get_analysis_controller() -> AnalysisController:
    """Builds a fresh controller from the settings attached to the app."""
    return AnalysisController(
        settings=current_app.config['ANALYZER_SETTINGS'],
        user_agent=current_app.config.get('USER_AGENT'),
    )


@analyze_router.route('/health', methods=['GET'])
def health():
    return success({"status": "ok"})


@analyze_router.route('/analyze', methods=['GET'])
def analyze():
    """Analyses the page given in the 'url' query parameter."""
    url = (request.args.get('url') or '').strip()
    if not url:
        return error(400, "missing 'url' query parameter")
    if not UrlUtils.is_valid_target_url(url):
        return error(400, "invalid 'url' format")

    controller = get_analysis_controller()
    try:
        report = asyncio.run(controller.analyze(url))
    except AnalysisError as e:
        status_code = ERROR_STATUS_CODES.get(e.kind, 500)
        return error(status_code, f"failed to analyze page: {e.message}", data=e.to_dict())

    return success(report.model_dump())
