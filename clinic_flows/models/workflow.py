"""
Workflow Models - Flow definitions and their executions
"""
from clinic_flows.database import db, JSONType
from sqlalchemy import Uuid
from datetime import datetime
import uuid
from enum import Enum


class TriggerType(str, Enum):
    """When a workflow definition becomes eligible to run"""
    EVENT = "event"
    WEBHOOK = "webhook"
    CONDITION = "condition"
    API_CALL = "api_call"
    DATABASE_CHANGE = "database_change"
    USER_ACTION = "user_action"
    AI_DETECTION = "ai_detection"
    SCHEDULE = "schedule"
    MANUAL = "manual"
    KEYWORD = "keyword"
    INTENT = "intent"
    MESSAGE_PATTERN = "message_pattern"


class ExecutionStatus(str, Enum):
    """Workflow execution status"""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class WorkflowDefinition(db.Model):
    """
    Workflow Definition - ordered steps run against an external entity
    (appointment, insurance claim, patient...)
    """
    __tablename__ = 'workflow_definitions'

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Identification
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100))

    # Trigger
    trigger_type = db.Column(db.String(50), nullable=False)
    trigger_config = db.Column(JSONType, nullable=False, default=dict)  # e.g. {"event_type": "appointment_created"}

    # Ordered step records: [{type, config, condition?}]
    steps = db.Column(JSONType, nullable=False, default=list)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    ai_model = db.Column(db.String(100), nullable=False, default='auto')

    created_by = db.Column(db.String(255))

    # Relationships
    executions = db.relationship('WorkflowExecution', back_populates='workflow', cascade='all, delete-orphan')

    # Indexes
    __table_args__ = (
        db.Index('idx_workflow_definition_trigger', 'trigger_type', 'is_active'),
        db.Index('idx_workflow_definition_category', 'category'),
    )

    def to_dict(self):
        return {
            'id': str(self.id),
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'trigger_type': self.trigger_type,
            'trigger_config': self.trigger_config or {},
            'steps': self.steps or [],
            'is_active': self.is_active,
            'ai_model': self.ai_model,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class WorkflowExecution(db.Model):
    """
    Workflow Execution - one run of a definition against one entity.
    Finalized to completed or failed exactly once, never resumed.
    """
    __tablename__ = 'workflow_executions'

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    workflow_id = db.Column(Uuid, db.ForeignKey('workflow_definitions.id', ondelete='CASCADE'), nullable=False)
    parent_execution_id = db.Column(Uuid, db.ForeignKey('workflow_executions.id', ondelete='SET NULL'))

    # Entity the run is attached to (opaque)
    entity_type = db.Column(db.String(100), nullable=False)
    entity_id = db.Column(db.String(255), nullable=False)

    # Execution state
    status = db.Column(db.String(50), nullable=False, default=ExecutionStatus.RUNNING.value)
    current_step = db.Column(db.Integer, nullable=False, default=0)
    step_results = db.Column(JSONType, nullable=False, default=list)
    context = db.Column(JSONType)
    error_message = db.Column(db.Text)

    # Timing
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    duration_ms = db.Column(db.Integer)

    # Relationships
    workflow = db.relationship('WorkflowDefinition', back_populates='executions')

    __table_args__ = (
        db.Index('idx_workflow_execution_workflow_id', 'workflow_id'),
        db.Index('idx_workflow_execution_entity', 'entity_type', 'entity_id'),
        db.Index('idx_workflow_execution_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': str(self.id),
            'workflow_id': str(self.workflow_id),
            'parent_execution_id': str(self.parent_execution_id) if self.parent_execution_id else None,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'status': self.status,
            'current_step': self.current_step,
            'step_results': self.step_results or [],
            'context': self.context or {},
            'error_message': self.error_message,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_ms': self.duration_ms,
        }
