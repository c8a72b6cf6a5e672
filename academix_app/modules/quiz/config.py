# File: academix_app/modules/quiz/config.py

class QuizDefaultConfig:
    """
    Default settings for the quiz module; ``app.config`` values of the same
    name (prefixed ``QUIZ_``) take precedence.
    """
    VALID_TOTAL_QUESTIONS = (10, 20, 30)
    QUESTION_TYPES = ('MCQ', 'TRUE_FALSE')
    MAX_TITLE_LENGTH = 200
    MAX_ANSWER_LENGTH = 500
