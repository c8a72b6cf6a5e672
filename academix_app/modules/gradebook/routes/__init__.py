from flask import Blueprint

gradebook_api_bp = Blueprint('gradebook_api', __name__)

from . import api  # noqa: E402,F401
