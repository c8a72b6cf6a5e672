# File: academix_app/modules/quiz/routes/quiz_api.py
from ....utils.api import load_payload, result_response
from ...access_control.decorators import api_actor_required
from ..interface import QuizInterface
from ..schemas import CreateQuizSchema, PublishSchema, QuestionSchema
from . import quiz_api_bp as blueprint


@blueprint.route('', methods=['POST'])
@api_actor_required
def create_quiz(actor_id, role):
    payload = load_payload(CreateQuizSchema())
    result = QuizInterface.lifecycle().create_draft(actor_id, role, **payload)
    return result_response(result, 201)


@blueprint.route('', methods=['GET'])
@api_actor_required
def list_my_quizzes(actor_id, role):
    return result_response(QuizInterface.lifecycle().list_for_teacher(actor_id, role))


@blueprint.route('/class/<int:class_section_id>', methods=['GET'])
@api_actor_required
def list_class_quizzes(class_section_id, actor_id, role):
    result = QuizInterface.lifecycle().list_published_for_class(actor_id, role, class_section_id)
    return result_response(result)


@blueprint.route('/<int:quiz_id>', methods=['DELETE'])
@api_actor_required
def delete_quiz(quiz_id, actor_id, role):
    return result_response(QuizInterface.lifecycle().delete_quiz(actor_id, role, quiz_id))


@blueprint.route('/<int:quiz_id>/questions', methods=['GET'])
@api_actor_required
def list_questions(quiz_id, actor_id, role):
    return result_response(QuizInterface.lifecycle().get_questions(actor_id, role, quiz_id))


@blueprint.route('/<int:quiz_id>/questions', methods=['POST'])
@api_actor_required
def add_question(quiz_id, actor_id, role):
    payload = load_payload(QuestionSchema())
    result = QuizInterface.lifecycle().add_question(actor_id, role, quiz_id, **payload)
    return result_response(result, 201)


@blueprint.route('/questions/<int:question_id>', methods=['PUT'])
@api_actor_required
def update_question(question_id, actor_id, role):
    payload = load_payload(QuestionSchema())
    result = QuizInterface.lifecycle().update_question(actor_id, role, question_id, **payload)
    return result_response(result)


@blueprint.route('/questions/<int:question_id>', methods=['DELETE'])
@api_actor_required
def delete_question(question_id, actor_id, role):
    return result_response(QuizInterface.lifecycle().delete_question(actor_id, role, question_id))


@blueprint.route('/<int:quiz_id>/publish', methods=['POST'])
@api_actor_required
def publish_quiz(quiz_id, actor_id, role):
    payload = load_payload(PublishSchema())
    result = QuizInterface.lifecycle().publish(actor_id, role, quiz_id, **payload)
    return result_response(result)


@blueprint.route('/<int:quiz_id>/close', methods=['POST'])
@api_actor_required
def close_quiz(quiz_id, actor_id, role):
    return result_response(QuizInterface.lifecycle().close(actor_id, role, quiz_id))
