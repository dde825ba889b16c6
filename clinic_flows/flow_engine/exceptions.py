"""
Flow engine exceptions.

Definition errors are raised before any execution row exists; everything
raised while a step runs is recorded on the execution and re-raised as-is,
carrying the failed run's id in an execution_id attribute.
"""
from typing import Optional, Sequence


class WorkflowError(Exception):
    """Base error for the flow engine"""
    pass


class WorkflowDefinitionError(WorkflowError):
    """The definition cannot be run (missing, inactive, malformed)"""

    def __init__(self, message: str, workflow_id: Optional[str] = None):
        self.workflow_id = workflow_id
        super().__init__(message)


class WorkflowNotFoundError(WorkflowDefinitionError):
    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow not found: {workflow_id}", workflow_id)


class WorkflowInactiveError(WorkflowDefinitionError):
    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow is inactive: {workflow_id}", workflow_id)


class StepConfigError(WorkflowDefinitionError):
    """A step record has an unknown type or an invalid config"""

    def __init__(self, message: str, step_index: Optional[int] = None, workflow_id: Optional[str] = None):
        self.step_index = step_index
        if step_index is not None:
            message = f"Step {step_index}: {message}"
        super().__init__(message, workflow_id)


class WorkflowCycleError(WorkflowError):
    """A trigger_workflow step re-enters a workflow already on the call chain"""

    def __init__(self, workflow_id: str, chain: Sequence[str]):
        self.workflow_id = workflow_id
        self.chain = list(chain)
        path = ' -> '.join(self.chain + [workflow_id])
        super().__init__(f"Workflow cycle detected: {path}")


class WorkflowDepthError(WorkflowError):
    """Sub-workflow nesting exceeded the configured maximum"""

    def __init__(self, workflow_id: str, max_depth: int):
        self.workflow_id = workflow_id
        self.max_depth = max_depth
        super().__init__(f"Maximum sub-workflow depth ({max_depth}) exceeded at workflow {workflow_id}")
