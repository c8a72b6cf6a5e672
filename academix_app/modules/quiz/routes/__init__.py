from flask import Blueprint

quiz_api_bp = Blueprint('quiz_api', __name__)
attempt_api_bp = Blueprint('attempt_api', __name__)

from . import quiz_api, attempt_api  # noqa: E402,F401
