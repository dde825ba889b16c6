"""
Step definitions - one dataclass per step kind.

Step records are stored as JSON ({type, config, condition?}) on the workflow
definition. parse_step() turns a record into its typed dataclass and rejects
unknown kinds or missing config fields up front, so a malformed definition
never starts an execution.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from clinic_flows.flow_engine.exceptions import StepConfigError


class StepType(str, Enum):
    """The six step kinds the interpreter knows how to run"""
    AI_RESPONSE = "ai_response"
    SEND_NOTIFICATION = "send_notification"
    CREATE_RECORD = "create_record"
    UPDATE_STATUS = "update_status"
    SEND_WHATSAPP = "send_whatsapp"
    TRIGGER_WORKFLOW = "trigger_workflow"


DEFAULT_NOTIFICATION_TITLE = 'Notification'
DEFAULT_NOTIFICATION_MESSAGE = 'You have a new notification'


def _require_str(config: Dict[str, Any], key: str) -> str:
    value = config.get(key)
    if not isinstance(value, str) or not value.strip():
        raise StepConfigError(f"'{key}' is required and must be a non-empty string")
    return value


def _optional_str(config: Dict[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = config.get(key)
    if value is None or value == '':
        return default
    if not isinstance(value, str):
        raise StepConfigError(f"'{key}' must be a string")
    return value


@dataclass
class AIResponseStep:
    """Render a prompt and ask the AI collaborator"""
    type: ClassVar[StepType] = StepType.AI_RESPONSE

    prompt: str = ''
    condition: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], condition: Optional[str] = None) -> 'AIResponseStep':
        return cls(prompt=_optional_str(config, 'prompt', ''), condition=condition)


@dataclass
class SendNotificationStep:
    """Create an in-app notification for a user"""
    type: ClassVar[StepType] = StepType.SEND_NOTIFICATION

    user_id: Optional[str] = None
    title: str = DEFAULT_NOTIFICATION_TITLE
    message: str = DEFAULT_NOTIFICATION_MESSAGE
    condition: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], condition: Optional[str] = None) -> 'SendNotificationStep':
        user_id = config.get('user_id', config.get('userId'))
        if user_id is not None and not isinstance(user_id, (str, int)):
            raise StepConfigError("'user_id' must be a string")
        return cls(
            user_id=str(user_id) if user_id not in (None, '') else None,
            title=_optional_str(config, 'title', DEFAULT_NOTIFICATION_TITLE),
            message=_optional_str(config, 'message', DEFAULT_NOTIFICATION_MESSAGE),
            condition=condition,
        )


@dataclass
class CreateRecordStep:
    """Insert a row built from `data` into `table`"""
    type: ClassVar[StepType] = StepType.CREATE_RECORD

    table: str
    data: Dict[str, Any] = field(default_factory=dict)
    condition: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], condition: Optional[str] = None) -> 'CreateRecordStep':
        data = config.get('data') or {}
        if not isinstance(data, dict):
            raise StepConfigError("'data' must be an object")
        return cls(table=_require_str(config, 'table'), data=data, condition=condition)


@dataclass
class UpdateStatusStep:
    """Set `status_field` = `status_value` on the row whose id is the entity id"""
    type: ClassVar[StepType] = StepType.UPDATE_STATUS

    table: str
    status_field: str
    status_value: Any
    condition: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], condition: Optional[str] = None) -> 'UpdateStatusStep':
        if 'status_value' not in config:
            raise StepConfigError("'status_value' is required")
        return cls(
            table=_require_str(config, 'table'),
            status_field=_require_str(config, 'status_field'),
            status_value=config['status_value'],
            condition=condition,
        )


@dataclass
class SendWhatsAppStep:
    """Send a rendered text message over WhatsApp"""
    type: ClassVar[StepType] = StepType.SEND_WHATSAPP

    phone: str
    message: str
    condition: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], condition: Optional[str] = None) -> 'SendWhatsAppStep':
        return cls(
            phone=_require_str(config, 'phone'),
            message=_require_str(config, 'message'),
            condition=condition,
        )


@dataclass
class TriggerWorkflowStep:
    """Run another workflow definition against the same entity and context"""
    type: ClassVar[StepType] = StepType.TRIGGER_WORKFLOW

    workflow_id: str
    condition: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], condition: Optional[str] = None) -> 'TriggerWorkflowStep':
        return cls(workflow_id=_require_str(config, 'workflow_id'), condition=condition)


Step = Union[
    AIResponseStep,
    SendNotificationStep,
    CreateRecordStep,
    UpdateStatusStep,
    SendWhatsAppStep,
    TriggerWorkflowStep,
]

STEP_CLASSES = {
    StepType.AI_RESPONSE: AIResponseStep,
    StepType.SEND_NOTIFICATION: SendNotificationStep,
    StepType.CREATE_RECORD: CreateRecordStep,
    StepType.UPDATE_STATUS: UpdateStatusStep,
    StepType.SEND_WHATSAPP: SendWhatsAppStep,
    StepType.TRIGGER_WORKFLOW: TriggerWorkflowStep,
}


def parse_step(record: Dict[str, Any], index: Optional[int] = None) -> Step:
    """
    Build the typed step for a stored step record.

    Args:
        record: {"type": ..., "config": {...}, "condition": "..."}
        index: Position in the definition (for error messages)

    Raises:
        StepConfigError: unknown type or invalid config
    """
    if not isinstance(record, dict):
        raise StepConfigError("step must be an object", index)

    raw_type = record.get('type')
    try:
        step_type = StepType(raw_type)
    except ValueError:
        raise StepConfigError(f"Unknown step type: {raw_type}", index)

    config = record.get('config') or {}
    if not isinstance(config, dict):
        raise StepConfigError("'config' must be an object", index)

    condition = record.get('condition')
    if condition is not None and not isinstance(condition, str):
        raise StepConfigError("'condition' must be a string", index)

    try:
        return STEP_CLASSES[step_type].from_config(config, condition or None)
    except StepConfigError as e:
        if index is None:
            raise
        raise StepConfigError(f"{step_type.value}: {e}", index) from e


def parse_steps(records: Any) -> List[Step]:
    """Parse every step record of a definition, in order."""
    if records is None:
        return []
    if not isinstance(records, list):
        raise StepConfigError("'steps' must be a list")
    return [parse_step(record, idx) for idx, record in enumerate(records)]
