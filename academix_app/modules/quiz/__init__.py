"""Quiz module: authoring, lifecycle and student attempts."""

module_metadata = {
    'name': 'Quiz',
    'description': 'Quiz authoring, publishing and scored student attempts.',
    'version': '1.0',
}

from .interface import QuizInterface  # noqa: E402

__all__ = ['QuizInterface', 'module_metadata']
