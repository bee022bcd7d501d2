"""
Collaboration lifecycle feature package.

state_machine holds the pure lifecycle rules; service applies them against
the store and hands completed or cancelled collaborations to the
reliability ledger.
"""

from .service import (  # noqa: F401
    CollaborationServiceError,
    TransitionResult,
    describe_collaboration,
    initialize_collaboration,
    submit_feedback,
    transition_collaboration,
    update_collaboration_details,
)
from .state_machine import InvalidTransitionError, validate_transition  # noqa: F401
