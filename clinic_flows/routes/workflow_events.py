"""
Workflow Events API - Fire an event and run every workflow listening to it

Endpoints:
- POST /api/v1/workflow-events - Trigger workflows by event type
"""

from flask import Blueprint, request, jsonify
import logging

from clinic_flows.flow_engine import get_workflow_executor

logger = logging.getLogger(__name__)

workflow_events_bp = Blueprint('workflow_events', __name__, url_prefix='/api/v1/workflow-events')


@workflow_events_bp.route('', methods=['POST'])
async def trigger_event():
    """
    Trigger workflows by event.

    Body:
        {
            "event_type": "appointment_created",
            "entity_type": "appointment",
            "entity_id": "a1",
            "context": {...}
        }

    Returns one outcome per matched workflow (fulfilled or rejected).
    """
    data = request.get_json(silent=True) or {}

    missing = [f for f in ('event_type', 'entity_type', 'entity_id') if data.get(f) in (None, '')]
    if missing:
        return jsonify({'error': f"Missing required fields: {', '.join(missing)}"}), 400

    context = data.get('context') or {}
    if not isinstance(context, dict):
        return jsonify({'error': 'context must be an object'}), 400

    try:
        outcomes = await get_workflow_executor().trigger_workflow_by_event(
            data['event_type'],
            data['entity_type'],
            str(data['entity_id']),
            context,
        )
    except Exception as e:
        logger.error(f"Error triggering event {data['event_type']}: {e}")
        return jsonify({'error': str(e)}), 500

    return jsonify({
        'event_type': data['event_type'],
        'outcomes': outcomes,
        'count': len(outcomes),
    }), 200
