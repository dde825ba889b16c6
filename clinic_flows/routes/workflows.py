"""
Workflows API - Routes for managing and running workflow definitions

Endpoints:
- GET /api/v1/workflows - List workflows
- POST /api/v1/workflows - Create workflow
- GET /api/v1/workflows/:id - Get workflow
- PUT /api/v1/workflows/:id - Update workflow
- DELETE /api/v1/workflows/:id - Delete workflow
- POST /api/v1/workflows/:id/toggle - Enable/disable workflow
- POST /api/v1/workflows/:id/execute - Execute workflow
- GET /api/v1/workflows/:id/executions - Executions of a workflow
"""

from flask import Blueprint, request, jsonify
from uuid import UUID, uuid4
import logging

from clinic_flows.database import db
from clinic_flows.flow_engine import get_workflow_executor
from clinic_flows.flow_engine.exceptions import (
    StepConfigError,
    WorkflowDefinitionError,
    WorkflowNotFoundError,
)
from clinic_flows.flow_engine.steps import parse_steps
from clinic_flows.models.workflow import TriggerType, WorkflowDefinition, WorkflowExecution

logger = logging.getLogger(__name__)

workflows_bp = Blueprint('workflows', __name__, url_prefix='/api/v1/workflows')

REQUIRED_FIELDS = ('name', 'trigger_type', 'steps')
UPDATABLE_FIELDS = (
    'name', 'description', 'category', 'trigger_type', 'trigger_config',
    'steps', 'is_active', 'ai_model',
)


def _parse_bool(value):
    if value is None:
        return None
    return str(value).lower() in ('1', 'true', 'yes')


def _get_workflow(workflow_id):
    try:
        return db.session.get(WorkflowDefinition, UUID(workflow_id))
    except ValueError:
        return None


def _validate(data: dict):
    """Return an error message for invalid fields, or None."""
    if 'name' in data and not (isinstance(data['name'], str) and data['name'].strip()):
        return 'name must be a non-empty string'

    if 'trigger_type' in data:
        valid = [t.value for t in TriggerType]
        if data['trigger_type'] not in valid:
            return f"trigger_type must be one of: {', '.join(valid)}"

    if 'trigger_config' in data and not isinstance(data['trigger_config'] or {}, dict):
        return 'trigger_config must be an object'

    if 'steps' in data:
        try:
            parse_steps(data['steps'])
        except StepConfigError as e:
            return str(e)

    if 'is_active' in data and not isinstance(data['is_active'], bool):
        return 'is_active must be a boolean'

    return None


@workflows_bp.route('', methods=['GET'])
def list_workflows():
    """
    List workflow definitions.

    Query params:
        category: Filter by category
        trigger_type: Filter by trigger type
        is_active: Filter by active flag (true/false)
    """
    category = request.args.get('category')
    trigger_type = request.args.get('trigger_type')
    is_active = _parse_bool(request.args.get('is_active'))

    query = WorkflowDefinition.query

    if category:
        query = query.filter_by(category=category)

    if trigger_type:
        query = query.filter_by(trigger_type=trigger_type)

    if is_active is not None:
        query = query.filter_by(is_active=is_active)

    workflows = query.order_by(WorkflowDefinition.created_at.desc()).all()

    return jsonify({
        'workflows': [w.to_dict() for w in workflows],
        'count': len(workflows)
    }), 200


@workflows_bp.route('', methods=['POST'])
def create_workflow():
    """
    Create a workflow definition.

    Body:
        {
            "name": "Confirm appointment",
            "category": "appointments",
            "trigger_type": "event",
            "trigger_config": {"event_type": "appointment_created"},
            "steps": [{"type": "send_notification", "config": {...}}],
            "ai_model": "auto"
        }
    """
    data = request.get_json(silent=True) or {}

    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, '')]
    if missing:
        return jsonify({'error': f"Missing required fields: {', '.join(missing)}"}), 400

    error = _validate(data)
    if error:
        return jsonify({'error': error}), 400

    try:
        workflow = WorkflowDefinition(
            id=uuid4(),
            name=data['name'],
            description=data.get('description'),
            category=data.get('category'),
            trigger_type=data['trigger_type'],
            trigger_config=data.get('trigger_config') or {},
            steps=data['steps'],
            is_active=data.get('is_active', True),
            ai_model=data.get('ai_model') or 'auto',
            created_by=data.get('created_by'),
        )

        db.session.add(workflow)
        db.session.commit()

        logger.info(f"Created workflow: {workflow.id} - {workflow.name}")

        return jsonify(workflow.to_dict()), 201

    except Exception as e:
        logger.error(f"Error creating workflow: {e}")
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@workflows_bp.route('/<workflow_id>', methods=['GET'])
def get_workflow(workflow_id):
    workflow = _get_workflow(workflow_id)
    if not workflow:
        return jsonify({'error': 'Workflow not found'}), 404

    return jsonify(workflow.to_dict()), 200


@workflows_bp.route('/<workflow_id>', methods=['PUT'])
def update_workflow(workflow_id):
    """Partial update: only the fields present in the body change."""
    workflow = _get_workflow(workflow_id)
    if not workflow:
        return jsonify({'error': 'Workflow not found'}), 404

    data = request.get_json(silent=True) or {}
    error = _validate(data)
    if error:
        return jsonify({'error': error}), 400

    try:
        defaults = {'trigger_config': {}, 'ai_model': 'auto'}
        for field in UPDATABLE_FIELDS:
            if field in data:
                setattr(workflow, field, data[field] or defaults.get(field, data[field]))

        db.session.commit()

        logger.info(f"Updated workflow: {workflow.id}")

        return jsonify(workflow.to_dict()), 200

    except Exception as e:
        logger.error(f"Error updating workflow: {e}")
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@workflows_bp.route('/<workflow_id>', methods=['DELETE'])
def delete_workflow(workflow_id):
    workflow = _get_workflow(workflow_id)
    if not workflow:
        return jsonify({'error': 'Workflow not found'}), 404

    try:
        db.session.delete(workflow)
        db.session.commit()

        logger.info(f"Deleted workflow: {workflow_id}")

        return jsonify({'message': 'Workflow deleted'}), 200

    except Exception as e:
        logger.error(f"Error deleting workflow: {e}")
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@workflows_bp.route('/<workflow_id>/toggle', methods=['POST'])
def toggle_workflow(workflow_id):
    """Flip is_active."""
    workflow = _get_workflow(workflow_id)
    if not workflow:
        return jsonify({'error': 'Workflow not found'}), 404

    workflow.is_active = not workflow.is_active
    db.session.commit()

    logger.info(f"Workflow {workflow_id} is_active={workflow.is_active}")

    return jsonify(workflow.to_dict()), 200


@workflows_bp.route('/<workflow_id>/execute', methods=['POST'])
async def execute_workflow(workflow_id):
    """
    Execute a workflow against an entity.

    Body:
        {
            "entity_type": "appointment",
            "entity_id": "a1",
            "context": {...}
        }
    """
    data = request.get_json(silent=True) or {}

    if not data.get('entity_type') or data.get('entity_id') in (None, ''):
        return jsonify({'error': 'entity_type and entity_id are required'}), 400

    context = data.get('context') or {}
    if not isinstance(context, dict):
        return jsonify({'error': 'context must be an object'}), 400

    executor = get_workflow_executor()
    try:
        result = await executor.execute_workflow(
            workflow_id,
            data['entity_type'],
            str(data['entity_id']),
            context,
        )
        return jsonify(result), 200

    except Exception as e:
        execution_id = getattr(e, 'execution_id', None)

        # Raised before this run wrote a row
        if execution_id is None and isinstance(e, WorkflowDefinitionError):
            status = 404 if isinstance(e, WorkflowNotFoundError) else 400
            return jsonify({'error': str(e)}), status

        logger.error(f"Error executing workflow {workflow_id}: {e}")
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': str(e),
            'execution_id': execution_id,
        }), 500


@workflows_bp.route('/<workflow_id>/executions', methods=['GET'])
def list_workflow_executions(workflow_id):
    """
    Executions of one workflow, newest first.

    Query params:
        limit: Max results (default: 50)
    """
    workflow = _get_workflow(workflow_id)
    if not workflow:
        return jsonify({'error': 'Workflow not found'}), 404

    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400

    if limit < 1:
        return jsonify({'error': 'limit must be positive'}), 400

    executions = (
        WorkflowExecution.query
        .filter_by(workflow_id=workflow.id)
        .order_by(WorkflowExecution.created_at.desc())
        .limit(limit)
        .all()
    )

    return jsonify({
        'executions': [e.to_dict() for e in executions],
        'count': len(executions)
    }), 200
