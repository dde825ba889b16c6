"""
Workflow Executions API - Routes for viewing workflow executions

Endpoints:
- GET /api/v1/workflow-executions - List executions
- GET /api/v1/workflow-executions/:id - Get execution details
"""

from flask import Blueprint, request, jsonify
from uuid import UUID
import logging

from clinic_flows.database import db
from clinic_flows.models.workflow import ExecutionStatus, WorkflowExecution

logger = logging.getLogger(__name__)

workflow_executions_bp = Blueprint('workflow_executions', __name__, url_prefix='/api/v1/workflow-executions')


@workflow_executions_bp.route('', methods=['GET'])
def list_executions():
    """
    List workflow executions.

    Query params:
        workflow_id: Filter by workflow
        status: Filter by status (running, completed, failed)
        entity_type: Filter by entity type
        entity_id: Filter by entity id
        limit: Max results (default: 50)
        offset: Pagination offset
    """
    workflow_id = request.args.get('workflow_id')
    status = request.args.get('status')
    entity_type = request.args.get('entity_type')
    entity_id = request.args.get('entity_id')

    try:
        limit = int(request.args.get('limit', 50))
        offset = int(request.args.get('offset', 0))
        query = WorkflowExecution.query

        if workflow_id:
            query = query.filter_by(workflow_id=UUID(workflow_id))

        if status:
            query = query.filter_by(status=ExecutionStatus(status).value)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    if entity_type:
        query = query.filter_by(entity_type=entity_type)

    if entity_id:
        query = query.filter_by(entity_id=entity_id)

    total = query.count()
    executions = query.order_by(WorkflowExecution.created_at.desc()).limit(limit).offset(offset).all()

    return jsonify({
        'executions': [e.to_dict() for e in executions],
        'total': total,
        'limit': limit,
        'offset': offset
    }), 200


@workflow_executions_bp.route('/<execution_id>', methods=['GET'])
def get_execution(execution_id):
    """Get execution details."""
    try:
        execution = db.session.get(WorkflowExecution, UUID(execution_id))
    except ValueError:
        execution = None

    if not execution:
        return jsonify({'error': 'Workflow execution not found'}), 404

    return jsonify(execution.to_dict()), 200
