from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from marshmallow import EXCLUDE, Schema, fields, validate

from .config import GradebookDefaultConfig


@dataclass
class ScoreCell:
    grade_item_id: int
    enrollment_id: int
    score: Optional[Decimal]
    reason: Optional[str] = None


class ScoreCellSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    grade_item_id = fields.Integer(required=True)
    enrollment_id = fields.Integer(required=True)
    score = fields.Decimal(required=True, allow_none=True)
    reason = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=500))


class UpsertScoresSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    scores = fields.List(fields.Nested(ScoreCellSchema), required=True)
    expected_version = fields.Integer(load_default=None, allow_none=True)


class GradeItemSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(
        required=True, validate=validate.Length(min=1, max=GradebookDefaultConfig.MAX_ITEM_NAME_LENGTH)
    )
    max_score = fields.Decimal(required=True)
    weight = fields.Decimal(load_default=None, allow_none=True)
    is_required = fields.Boolean(load_default=True)
    sort_order = fields.Integer(load_default=None, allow_none=True)
    expected_version = fields.Integer(load_default=None, allow_none=True)


class ReviewMessageSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    message = fields.String(
        load_default=None, allow_none=True, validate=validate.Length(max=GradebookDefaultConfig.MAX_MESSAGE_LENGTH)
    )
    expected_version = fields.Integer(load_default=None, allow_none=True)
