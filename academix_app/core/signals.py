"""
Central signal registry for the assessment pipeline.

Usage:
    # Publisher
    from academix_app.core.signals import quiz_published, send_safely
    send_safely(quiz_published, sender, quiz_id=1, class_section_id=2)

    # Subscriber, in a module's events.py
    @attempt_submitted.connect
    def on_attempt_submitted(sender, **kwargs):
        ...

Receivers run after the state change is committed. ``send_safely`` logs a
failing receiver and carries on with the others.
"""
import logging

from blinker import Namespace

logger = logging.getLogger(__name__)

# ============================================
# Quiz Signals
# ============================================
quiz_signals = Namespace()

# Payload: quiz_id, class_section_id, teacher_id, start_at, end_at
quiz_published = quiz_signals.signal('quiz_published')

# Payload: attempt_id, quiz_id, student_id, class_section_id, score, max_score, late
attempt_submitted = quiz_signals.signal('attempt_submitted')

# ============================================
# Gradebook Signals
# ============================================
gradebook_signals = Namespace()

# Payload: grade_book_id, class_section_id, requested_by, message
gradebook_review_requested = gradebook_signals.signal('gradebook_review_requested')

# Payload: grade_book_id, class_section_id, approved_by, message
gradebook_approved = gradebook_signals.signal('gradebook_approved')

# Payload: grade_book_id, class_section_id, rejected_by, message
gradebook_rejected = gradebook_signals.signal('gradebook_rejected')


def send_safely(signal, sender, **payload) -> int:
    """Deliver ``payload`` to every receiver, returning the number that failed."""
    failures = 0
    for receiver in signal.receivers_for(sender):
        try:
            receiver(sender, **payload)
        except Exception:
            failures += 1
            logger.warning(
                "Receiver %r for signal '%s' failed", receiver, signal.name, exc_info=True
            )
    return failures
