# noqa
from roleplay.services.conversation_service import ConversationService
from roleplay.services.feedback_service import FeedbackService
from roleplay.services.feedback_acquisition import FeedbackAcquisitionPolicy, FeedbackOutcome
from roleplay.services.workflow_controller import WorkflowController

__all__ = [
    "ConversationService",
    "FeedbackService",
    "FeedbackAcquisitionPolicy",
    "FeedbackOutcome",
    "WorkflowController",
]
