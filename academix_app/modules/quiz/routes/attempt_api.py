# File: academix_app/modules/quiz/routes/attempt_api.py
from ....utils.api import load_payload, result_response
from ...access_control.decorators import api_actor_required
from ..interface import QuizInterface
from ..schemas import SubmitAttemptSchema
from . import attempt_api_bp as blueprint


@blueprint.route('/quiz/<int:quiz_id>/start', methods=['POST'])
@api_actor_required
def start_attempt(quiz_id, actor_id, role):
    result = QuizInterface.attempts().start_attempt(actor_id, role, quiz_id)
    return result_response(result, 201)


@blueprint.route('/<int:attempt_id>', methods=['GET'])
@api_actor_required
def get_attempt(attempt_id, actor_id, role):
    return result_response(QuizInterface.attempts().get_attempt_view(actor_id, role, attempt_id))


@blueprint.route('/<int:attempt_id>/submit', methods=['POST'])
@api_actor_required
def submit_attempt(attempt_id, actor_id, role):
    payload = load_payload(SubmitAttemptSchema())
    result = QuizInterface.attempts().submit_attempt(actor_id, role, attempt_id, answers=payload['answers'])
    return result_response(result)
