"""
Step Processor - Runs one parsed step against the run context

Handlers (one per StepType):
- ai_response: render prompt, ask the AI assistant
- send_notification: create an in-app notification
- create_record: insert a row into a caller-named table
- update_status: set one column on the entity's row
- send_whatsapp: send a rendered WhatsApp text
- trigger_workflow: run another workflow on the same entity

Handlers raise on failure; the executor records the error and aborts the run.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import sqlalchemy as sa

from clinic_flows.database import db
from clinic_flows.flow_engine.steps import (
    AIResponseStep,
    CreateRecordStep,
    SendNotificationStep,
    SendWhatsAppStep,
    Step,
    StepType,
    TriggerWorkflowStep,
    UpdateStatusStep,
)
from clinic_flows.flow_engine.variable_resolver import VariableResolver
from clinic_flows.services.ai import ask
from clinic_flows.services.notification_service import create_notification
from clinic_flows.services.whatsapp import send_text_message

logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """Everything a handler may need about the run it belongs to"""
    execution_id: str
    workflow_id: str
    entity_type: str
    entity_id: str
    context: Dict[str, Any] = field(default_factory=dict)
    ai_model: str = 'auto'
    call_chain: Tuple[str, ...] = ()

    @property
    def template_context(self) -> Dict[str, Any]:
        """Context used for placeholder rendering"""
        return {**self.context, 'entity_type': self.entity_type, 'entity_id': self.entity_id}

    @property
    def resolver(self) -> VariableResolver:
        return VariableResolver(self.template_context)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


class StepProcessor:
    """
    Dispatches parsed steps to their handlers.

    Args:
        executor: WorkflowExecutor used by trigger_workflow steps
    """

    def __init__(self, executor=None):
        self.executor = executor
        self.handlers = {
            StepType.AI_RESPONSE: self.run_ai_response,
            StepType.SEND_NOTIFICATION: self.run_send_notification,
            StepType.CREATE_RECORD: self.run_create_record,
            StepType.UPDATE_STATUS: self.run_update_status,
            StepType.SEND_WHATSAPP: self.run_send_whatsapp,
            StepType.TRIGGER_WORKFLOW: self.run_trigger_workflow,
        }

    async def process(self, step: Step, ctx: ExecutionContext) -> Dict[str, Any]:
        """
        Run a step and return its JSON-serialisable result.

        Raises whatever the handler raises.
        """
        handler = self.handlers[step.type]
        logger.info(f"Executing step {step.type.value} (execution={ctx.execution_id})")
        return await handler(step, ctx)

    async def run_ai_response(self, step: AIResponseStep, ctx: ExecutionContext) -> Dict[str, Any]:
        prompt = ctx.resolver.render(step.prompt)
        response = await ask(prompt, json.dumps(ctx.context, default=str), preferred_model=ctx.ai_model)
        if response.error:
            logger.warning(f"AI step degraded to fallback text: {response.error}")
        return {'response': response.text, 'model': response.model}

    async def run_send_notification(self, step: SendNotificationStep, ctx: ExecutionContext) -> Dict[str, Any]:
        resolver = ctx.resolver
        user_id = resolver.resolve(step.user_id) if step.user_id else None
        if not user_id:
            user_id = ctx.context.get('userId') or ctx.context.get('user_id')

        notification = create_notification(
            title=resolver.render(step.title),
            message=resolver.render(step.message),
            user_id=user_id,
            type='system',
            entity_type=ctx.entity_type,
            entity_id=ctx.entity_id,
        )
        return {
            'sent': notification is not None,
            'notification_id': str(notification.id) if notification is not None else None,
        }

    def _reflect_table(self, name: str) -> sa.Table:
        """Load a table definition from the live database (raises NoSuchTableError)."""
        return sa.Table(name, sa.MetaData(), autoload_with=db.session.connection())

    async def run_create_record(self, step: CreateRecordStep, ctx: ExecutionContext) -> Dict[str, Any]:
        data = ctx.resolver.resolve(step.data)
        table = self._reflect_table(step.table)

        result = db.session.execute(table.insert().values(**data))
        db.session.commit()

        primary_key = result.inserted_primary_key
        record_id = primary_key[0] if primary_key else None
        logger.info(f"Created record in {step.table}: {record_id}")
        return {'record_id': _jsonable(record_id)}

    async def run_update_status(self, step: UpdateStatusStep, ctx: ExecutionContext) -> Dict[str, Any]:
        table = self._reflect_table(step.table)
        if step.status_field not in table.c:
            raise ValueError(f"Column '{step.status_field}' does not exist on table '{step.table}'")

        status_value = ctx.resolver.resolve(step.status_value)
        statement = (
            table.update()
            .where(table.c.id == ctx.entity_id)
            .values({step.status_field: status_value})
        )
        result = db.session.execute(statement)
        db.session.commit()

        logger.info(f"Updated {step.table}.{step.status_field} for {ctx.entity_id} ({result.rowcount} rows)")
        return {'updated': True, 'rows': result.rowcount}

    async def run_send_whatsapp(self, step: SendWhatsAppStep, ctx: ExecutionContext) -> Dict[str, Any]:
        resolver = ctx.resolver
        phone = resolver.render(step.phone)
        message = resolver.render(step.message)

        result = await send_text_message(phone, message)
        return {'sent': bool(result.get('success')), 'message_id': result.get('message_id')}

    async def run_trigger_workflow(self, step: TriggerWorkflowStep, ctx: ExecutionContext) -> Dict[str, Any]:
        if self.executor is None:
            raise RuntimeError("trigger_workflow requires a workflow executor")

        workflow_id = ctx.resolver.render(step.workflow_id)
        return await self.executor.execute_workflow(
            workflow_id,
            ctx.entity_type,
            ctx.entity_id,
            ctx.context,
            call_chain=ctx.call_chain,
            parent_execution_id=ctx.execution_id,
        )
