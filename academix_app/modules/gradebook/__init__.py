"""Gradebook module: grade items, score entry, approval and quiz score sync."""

module_metadata = {
    'name': 'Gradebook',
    'description': 'Per-section gradebooks with an approval workflow.',
    'version': '1.0',
}


def setup_module(app):
    """Connect the gradebook signal receivers."""
    from .events import register_events

    register_events()


from .interface import GradebookInterface  # noqa: E402

__all__ = ['GradebookInterface', 'module_metadata', 'setup_module']
