"""
Workflow Executor - Runs workflow definitions step by step

Responsibilities:
- Load the definition and reject missing/inactive ones
- Parse the step records before anything is written
- Create the WorkflowExecution row and persist it after every step
- Skip steps whose condition is false
- Record the failing step, mark the run failed and re-raise
- Guard sub-workflow calls against cycles and runaway depth
- Find and run every active workflow listening to an event
"""

import asyncio
import json
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from clinic_flows.config import get_setting
from clinic_flows.database import db
from clinic_flows.flow_engine.conditions import evaluate_condition
from clinic_flows.flow_engine.exceptions import (
    StepConfigError,
    WorkflowCycleError,
    WorkflowDepthError,
    WorkflowInactiveError,
    WorkflowNotFoundError,
)
from clinic_flows.flow_engine.step_processor import ExecutionContext, StepProcessor
from clinic_flows.flow_engine.steps import parse_steps
from clinic_flows.models.workflow import (
    ExecutionStatus,
    TriggerType,
    WorkflowDefinition,
    WorkflowExecution,
)

logger = logging.getLogger(__name__)

SKIPPED_REASON = 'Condition not met'


def matches_trigger(trigger_config: Optional[Dict[str, Any]], expected: Dict[str, Any]) -> bool:
    """True when every key of expected is present in trigger_config with the same value."""
    trigger_config = trigger_config or {}
    return all(trigger_config.get(key) == value for key, value in expected.items())


def to_json_safe(value: Any) -> Any:
    """Copy of value that the JSON columns can store (unknown types become str)."""
    return json.loads(json.dumps(value, default=str))


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


class WorkflowExecutor:
    """
    Executes workflow definitions against an entity.

    Usage:
        executor = get_workflow_executor()
        result = await executor.execute_workflow(
            workflow_id='uuid',
            entity_type='appointment',
            entity_id='a1',
            context={'userId': 'u1'},
        )
    """

    def __init__(self, step_processor: Optional[StepProcessor] = None):
        self.step_processor = step_processor or StepProcessor(self)
        if self.step_processor.executor is None:
            self.step_processor.executor = self

    def load_workflow(self, workflow_id: str) -> WorkflowDefinition:
        try:
            key = uuid.UUID(str(workflow_id))
        except ValueError:
            raise WorkflowNotFoundError(str(workflow_id))

        workflow = db.session.get(WorkflowDefinition, key)
        if not workflow:
            raise WorkflowNotFoundError(str(workflow_id))
        return workflow

    def _check_call_chain(self, workflow_id: str, call_chain: Sequence[str]):
        if workflow_id in call_chain:
            raise WorkflowCycleError(workflow_id, call_chain)

        max_depth = get_setting('FLOW_MAX_DEPTH', 10)
        if len(call_chain) >= max_depth:
            raise WorkflowDepthError(workflow_id, max_depth)

    async def execute_workflow(
        self,
        workflow_id: str,
        entity_type: str,
        entity_id: str,
        context: Optional[Dict[str, Any]] = None,
        *,
        call_chain: Sequence[str] = (),
        parent_execution_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Execute a workflow definition.

        Args:
            workflow_id: WorkflowDefinition UUID
            entity_type: Kind of entity the run is attached to
            entity_id: Entity id
            context: Placeholder values for the steps
            call_chain: Workflow ids of the enclosing runs (sub-workflows)
            parent_execution_id: Execution that triggered this one

        Returns:
            {'success': True, 'execution_id': str, 'results': [...]}

        Raises:
            WorkflowDefinitionError: not found, inactive or malformed (no row written)
            WorkflowCycleError / WorkflowDepthError: sub-workflow guard
            Exception: whatever the failing step raised, after the run is marked
                failed; its execution_id attribute names the failed run
        """
        workflow_id = str(workflow_id)
        call_chain = tuple(call_chain)
        self._check_call_chain(workflow_id, call_chain)

        # 1. Load and validate definition
        workflow = self.load_workflow(workflow_id)
        if not workflow.is_active:
            raise WorkflowInactiveError(workflow_id)

        try:
            steps = parse_steps(workflow.steps)
        except StepConfigError as e:
            e.workflow_id = workflow_id
            raise

        context = to_json_safe(dict(context or {}))
        entity_id = str(entity_id)

        # 2. Create execution
        execution = WorkflowExecution(
            id=uuid.uuid4(),
            workflow_id=workflow.id,
            parent_execution_id=uuid.UUID(str(parent_execution_id)) if parent_execution_id else None,
            entity_type=entity_type,
            entity_id=entity_id,
            status=ExecutionStatus.RUNNING.value,
            current_step=0,
            step_results=[],
            context=context,
            started_at=datetime.utcnow(),
        )
        db.session.add(execution)
        _commit()

        execution_id = str(execution.id)
        start_time = time.monotonic()
        logger.info(f"Created WorkflowExecution: {execution_id} for workflow: {workflow.name}")

        ctx = ExecutionContext(
            execution_id=execution_id,
            workflow_id=workflow_id,
            entity_type=entity_type,
            entity_id=entity_id,
            context=context,
            ai_model=workflow.ai_model or 'auto',
            call_chain=call_chain + (workflow_id,),
        )

        # 3. Run steps in order
        results: List[Dict[str, Any]] = []
        for index, step in enumerate(steps):
            if step.condition and not evaluate_condition(step.condition, ctx.template_context):
                logger.info(f"Step {index} skipped ({step.type.value}): {SKIPPED_REASON}")
                results.append({'step': index, 'skipped': True, 'reason': SKIPPED_REASON})
            else:
                try:
                    result = await self.step_processor.process(step, ctx)
                except Exception as e:
                    db.session.rollback()
                    results.append({'step': index, 'error': str(e)})
                    self._fail(execution, results, start_time, e)
                    logger.error(f"WorkflowExecution failed: {execution_id} at step {index} - {e}")
                    raise
                results.append({'step': index, 'result': to_json_safe(result)})

            execution.current_step = index + 1
            execution.step_results = list(results)
            try:
                _commit()
            except SQLAlchemyError as e:
                self._fail(execution, results, start_time, e)
                logger.error(f"WorkflowExecution failed: {execution_id} saving step {index} - {e}")
                raise

        # 4. Mark as completed
        self._finish(execution, ExecutionStatus.COMPLETED, results, start_time)
        logger.info(f"WorkflowExecution completed: {execution_id} ({len(results)} steps)")

        return {'success': True, 'execution_id': execution_id, 'results': results}

    def _finish(
        self,
        execution: WorkflowExecution,
        status: ExecutionStatus,
        results: List[Dict[str, Any]],
        start_time: float,
        error_message: Optional[str] = None,
    ):
        execution.status = status.value
        execution.step_results = list(results)
        execution.error_message = error_message
        execution.completed_at = datetime.utcnow()
        execution.duration_ms = int((time.monotonic() - start_time) * 1000)
        _commit()

    def _fail(
        self,
        execution: WorkflowExecution,
        results: List[Dict[str, Any]],
        start_time: float,
        error: Exception,
    ):
        """Mark the run failed and tag error with its execution id (outermost run wins)."""
        error.execution_id = str(execution.id)
        self._finish(execution, ExecutionStatus.FAILED, results, start_time, error_message=str(error))

    def find_event_workflows(self, event_type: str) -> List[WorkflowDefinition]:
        """Active event-triggered definitions whose trigger_config names event_type."""
        candidates = (
            WorkflowDefinition.query
            .filter(
                WorkflowDefinition.trigger_type == TriggerType.EVENT.value,
                WorkflowDefinition.is_active.is_(True),
            )
            .order_by(WorkflowDefinition.created_at)
            .all()
        )
        return [w for w in candidates if matches_trigger(w.trigger_config, {'event_type': event_type})]

    async def trigger_workflow_by_event(
        self,
        event_type: str,
        entity_type: str,
        entity_id: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run every active workflow listening to event_type, concurrently.

        Returns:
            One outcome per matched workflow:
            {'workflow_id', 'status': 'fulfilled', 'value'} or
            {'workflow_id', 'status': 'rejected', 'reason', 'execution_id'}
            (execution_id is None when the run never started)

        Only a failing lookup query raises.
        """
        workflow_ids = [str(w.id) for w in self.find_event_workflows(event_type)]
        logger.info(f"Event {event_type}: {len(workflow_ids)} matching workflows")

        settled = await asyncio.gather(
            *[
                self.execute_workflow(workflow_id, entity_type, entity_id, context)
                for workflow_id in workflow_ids
            ],
            return_exceptions=True,
        )

        outcomes = []
        for workflow_id, outcome in zip(workflow_ids, settled):
            if isinstance(outcome, BaseException):
                logger.warning(f"Event {event_type}: workflow {workflow_id} rejected - {outcome}")
                outcomes.append({
                    'workflow_id': workflow_id,
                    'status': 'rejected',
                    'reason': str(outcome),
                    'execution_id': getattr(outcome, 'execution_id', None),
                })
            else:
                outcomes.append({'workflow_id': workflow_id, 'status': 'fulfilled', 'value': outcome})
        return outcomes


_workflow_executor: Optional[WorkflowExecutor] = None


def get_workflow_executor() -> WorkflowExecutor:
    """Get the shared WorkflowExecutor instance"""
    global _workflow_executor
    if _workflow_executor is None:
        _workflow_executor = WorkflowExecutor()
    return _workflow_executor
