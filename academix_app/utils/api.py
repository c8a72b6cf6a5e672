"""Helpers shared by the JSON API blueprints."""

from __future__ import annotations

from flask import jsonify, request
from marshmallow import Schema

from ..core.service_result import ServiceResult


def load_payload(schema: Schema) -> dict:
    """Load the request JSON body with ``schema``.

    ``marshmallow.ValidationError`` propagates to the app error handler,
    which answers 400 ``INVALID_INPUT``.
    """
    return schema.load(request.get_json(silent=True) or {})


def result_response(result: ServiceResult, success_status: int = 200):
    status = success_status if result.success else result.http_status
    return jsonify(result.to_dict()), status
