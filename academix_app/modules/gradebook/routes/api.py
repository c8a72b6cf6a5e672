# File: academix_app/modules/gradebook/routes/api.py
from ....utils.api import load_payload, result_response
from ...access_control.decorators import api_actor_required
from ..interface import GradebookInterface
from ..schemas import GradeItemSchema, ReviewMessageSchema, ScoreCell, UpsertScoresSchema
from . import gradebook_api_bp as blueprint


@blueprint.route('/<int:class_section_id>', methods=['GET'])
@api_actor_required
def get_gradebook(class_section_id, actor_id, role):
    return result_response(GradebookInterface.gradebooks().get_detail(actor_id, role, class_section_id))


@blueprint.route('/<int:class_section_id>/items', methods=['POST'])
@api_actor_required
def add_grade_item(class_section_id, actor_id, role):
    payload = load_payload(GradeItemSchema())
    result = GradebookInterface.gradebooks().add_grade_item(actor_id, role, class_section_id, **payload)
    return result_response(result, 201)


@blueprint.route('/<int:class_section_id>/scores', methods=['PUT'])
@api_actor_required
def upsert_scores(class_section_id, actor_id, role):
    payload = load_payload(UpsertScoresSchema())
    cells = [ScoreCell(**cell) for cell in payload['scores']]
    result = GradebookInterface.gradebooks().upsert_scores(
        actor_id, role, class_section_id, cells, expected_version=payload['expected_version']
    )
    return result_response(result)


@blueprint.route('/<int:class_section_id>/request-approval', methods=['POST'])
@api_actor_required
def request_approval(class_section_id, actor_id, role):
    payload = load_payload(ReviewMessageSchema())
    result = GradebookInterface.gradebooks().request_approval(actor_id, role, class_section_id, **payload)
    return result_response(result)


@blueprint.route('/<int:class_section_id>/approve', methods=['POST'])
@api_actor_required
def approve(class_section_id, actor_id, role):
    payload = load_payload(ReviewMessageSchema())
    result = GradebookInterface.gradebooks().approve(actor_id, role, class_section_id, **payload)
    return result_response(result)


@blueprint.route('/<int:class_section_id>/reject', methods=['POST'])
@api_actor_required
def reject(class_section_id, actor_id, role):
    payload = load_payload(ReviewMessageSchema())
    result = GradebookInterface.gradebooks().reject(actor_id, role, class_section_id, **payload)
    return result_response(result)


@blueprint.route('/sync/attempts/<int:attempt_id>', methods=['POST'])
@api_actor_required
def sync_attempt(attempt_id, actor_id, role):
    result = GradebookInterface.score_sync().sync_attempt_score(attempt_id, actor_id=actor_id, role=role)
    return result_response(result)
