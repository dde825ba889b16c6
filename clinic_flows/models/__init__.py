from .workflow import WorkflowDefinition, WorkflowExecution, TriggerType, ExecutionStatus
from .notification import Notification

__all__ = [
    'WorkflowDefinition',
    'WorkflowExecution',
    'TriggerType',
    'ExecutionStatus',
    'Notification',
]
