"""
Flow Engine - workflow interpreter for clinic automation

Runs ordered steps (AI prompts, notifications, record writes, WhatsApp
messages, sub-workflows) against an entity and persists every step.
"""

from clinic_flows.flow_engine.executor import WorkflowExecutor, get_workflow_executor
from clinic_flows.flow_engine.variable_resolver import VariableResolver
from clinic_flows.flow_engine.step_processor import StepProcessor, ExecutionContext
from clinic_flows.flow_engine.conditions import evaluate_condition
from clinic_flows.flow_engine.steps import StepType, parse_step, parse_steps

__all__ = [
    'WorkflowExecutor',
    'get_workflow_executor',
    'VariableResolver',
    'StepProcessor',
    'ExecutionContext',
    'evaluate_condition',
    'StepType',
    'parse_step',
    'parse_steps',
]
