"""
Tests for the workflow HTTP API
"""

import uuid

from unittest.mock import AsyncMock, patch

from clinic_flows.models import WorkflowExecution
from clinic_flows.services.whatsapp import WhatsAppAPIError

NOTIFY = {'type': 'send_notification', 'config': {'title': 'Hi'}}
CONFIRM = {
    'type': 'update_status',
    'config': {'table': 'appointments', 'status_field': 'status', 'status_value': 'confirmed'},
}


def create(client, **overrides):
    body = {
        'name': 'Confirm appointment',
        'category': 'appointments',
        'trigger_type': 'event',
        'trigger_config': {'event_type': 'appointment_created'},
        'steps': [NOTIFY, CONFIRM],
    }
    body.update(overrides)
    return client.post('/api/v1/workflows', json=body)


class TestWorkflowCrud:

    def test_create(self, client):
        response = create(client)

        assert response.status_code == 201
        data = response.get_json()
        assert data['name'] == 'Confirm appointment'
        assert data['is_active'] is True
        assert data['ai_model'] == 'auto'
        assert len(data['steps']) == 2

    def test_create_missing_fields(self, client):
        response = client.post('/api/v1/workflows', json={'name': 'x'})

        assert response.status_code == 400
        assert 'trigger_type' in response.get_json()['error']

    def test_create_invalid_trigger_type(self, client):
        response = create(client, trigger_type='cron')

        assert response.status_code == 400

    def test_create_invalid_step(self, client):
        response = create(client, steps=[{'type': 'send_fax', 'config': {}}])

        assert response.status_code == 400
        assert 'Unknown step type' in response.get_json()['error']

    def test_list_with_filters(self, client):
        create(client)
        create(client, name='Manual one', trigger_type='manual', is_active=False)

        all_workflows = client.get('/api/v1/workflows').get_json()
        assert all_workflows['count'] == 2

        active = client.get('/api/v1/workflows?is_active=true').get_json()
        assert [w['name'] for w in active['workflows']] == ['Confirm appointment']

        manual = client.get('/api/v1/workflows?trigger_type=manual').get_json()
        assert manual['count'] == 1

    def test_get_update_delete(self, client):
        workflow_id = create(client).get_json()['id']

        assert client.get(f'/api/v1/workflows/{workflow_id}').status_code == 200

        updated = client.put(f'/api/v1/workflows/{workflow_id}', json={'name': 'Renamed', 'ai_model': 'gemini'})
        assert updated.status_code == 200
        assert updated.get_json()['name'] == 'Renamed'
        assert updated.get_json()['ai_model'] == 'gemini'
        assert updated.get_json()['trigger_type'] == 'event'

        bad = client.put(f'/api/v1/workflows/{workflow_id}', json={'steps': [{'type': 'nope'}]})
        assert bad.status_code == 400

        assert client.delete(f'/api/v1/workflows/{workflow_id}').status_code == 200
        assert client.get(f'/api/v1/workflows/{workflow_id}').status_code == 404

    def test_unknown_id(self, client):
        assert client.get(f'/api/v1/workflows/{uuid.uuid4()}').status_code == 404
        assert client.get('/api/v1/workflows/not-a-uuid').status_code == 404

    def test_toggle(self, client):
        workflow_id = create(client).get_json()['id']

        response = client.post(f'/api/v1/workflows/{workflow_id}/toggle')

        assert response.get_json()['is_active'] is False


class TestExecuteEndpoint:

    def test_execute(self, client):
        workflow_id = create(client).get_json()['id']

        response = client.post(f'/api/v1/workflows/{workflow_id}/execute', json={
            'entity_type': 'appointment',
            'entity_id': 'a1',
            'context': {'userId': 'u1'},
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert len(data['results']) == 2

        executions = client.get(f'/api/v1/workflows/{workflow_id}/executions').get_json()
        assert executions['count'] == 1
        assert executions['executions'][0]['status'] == 'completed'

    def test_execute_requires_entity(self, client):
        workflow_id = create(client).get_json()['id']

        response = client.post(f'/api/v1/workflows/{workflow_id}/execute', json={'context': {}})

        assert response.status_code == 400

    def test_execute_inactive(self, client):
        workflow_id = create(client, is_active=False).get_json()['id']

        response = client.post(f'/api/v1/workflows/{workflow_id}/execute', json={
            'entity_type': 'appointment', 'entity_id': 'a1',
        })

        assert response.status_code == 400
        assert WorkflowExecution.query.count() == 0

    def test_execute_unknown(self, client):
        response = client.post(f'/api/v1/workflows/{uuid.uuid4()}/execute', json={
            'entity_type': 'appointment', 'entity_id': 'a1',
        })

        assert response.status_code == 404

    def test_execute_step_failure(self, client):
        workflow_id = create(client, steps=[
            {'type': 'send_whatsapp', 'config': {'phone': '{{phone}}', 'message': 'Hi'}},
        ]).get_json()['id']
        send = AsyncMock(side_effect=WhatsAppAPIError('Invalid phone', 400))

        with patch('clinic_flows.flow_engine.step_processor.send_text_message', send):
            response = client.post(f'/api/v1/workflows/{workflow_id}/execute', json={
                'entity_type': 'appointment', 'entity_id': 'a1', 'context': {'phone': '000'},
            })

        assert response.status_code == 500
        data = response.get_json()
        assert data['error'] == 'Invalid phone'
        assert data['execution_id'] is not None
        send.assert_called_once_with('000', 'Hi')

        execution = client.get(f"/api/v1/workflow-executions/{data['execution_id']}").get_json()
        assert execution['status'] == 'failed'

    def test_missing_sub_workflow_is_a_step_failure(self, client):
        """The parent exists and ran: 500 with the parent's execution id, not 404"""
        missing_id = str(uuid.uuid4())
        workflow_id = create(client, steps=[
            {'type': 'trigger_workflow', 'config': {'workflow_id': missing_id}},
        ]).get_json()['id']

        response = client.post(f'/api/v1/workflows/{workflow_id}/execute', json={
            'entity_type': 'appointment', 'entity_id': 'a1',
        })

        assert response.status_code == 500
        data = response.get_json()
        assert missing_id in data['error']

        execution = WorkflowExecution.query.one()
        assert data['execution_id'] == str(execution.id)
        assert str(execution.workflow_id) == workflow_id
        assert execution.status == 'failed'

    def test_inactive_sub_workflow_is_a_step_failure(self, client):
        child_id = create(client, name='child', steps=[CONFIRM], is_active=False).get_json()['id']
        parent_id = create(client, name='parent', steps=[
            {'type': 'trigger_workflow', 'config': {'workflow_id': child_id}},
        ]).get_json()['id']

        response = client.post(f'/api/v1/workflows/{parent_id}/execute', json={
            'entity_type': 'appointment', 'entity_id': 'a1',
        })

        assert response.status_code == 500
        execution = WorkflowExecution.query.one()
        assert response.get_json()['execution_id'] == str(execution.id)

    def test_executions_limit_must_be_integer(self, client):
        workflow_id = create(client).get_json()['id']

        response = client.get(f'/api/v1/workflows/{workflow_id}/executions?limit=abc')

        assert response.status_code == 400


class TestEventsEndpoint:

    def test_trigger_event(self, client):
        create(client)
        create(client, steps=[{'type': 'create_record', 'config': {'table': 'bad_table', 'data': {}}}])

        response = client.post('/api/v1/workflow-events', json={
            'event_type': 'appointment_created',
            'entity_type': 'appointment',
            'entity_id': 'a1',
            'context': {'userId': 'u1'},
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['count'] == 2
        assert sorted(o['status'] for o in data['outcomes']) == ['fulfilled', 'rejected']

    def test_trigger_event_requires_fields(self, client):
        response = client.post('/api/v1/workflow-events', json={'event_type': 'x'})

        assert response.status_code == 400


class TestExecutionsEndpoint:

    def test_list_and_filter(self, client):
        workflow_id = create(client).get_json()['id']
        for entity_id in ('a1', 'a2'):
            client.post(f'/api/v1/workflows/{workflow_id}/execute', json={
                'entity_type': 'appointment', 'entity_id': entity_id, 'context': {'userId': 'u1'},
            })

        data = client.get('/api/v1/workflow-executions?entity_id=a2').get_json()
        assert data['total'] == 1
        assert data['executions'][0]['entity_id'] == 'a2'

        completed = client.get(f'/api/v1/workflow-executions?workflow_id={workflow_id}&status=completed').get_json()
        assert completed['total'] == 2

    def test_invalid_status_filter(self, client):
        response = client.get('/api/v1/workflow-executions?status=cancelled')

        assert response.status_code == 400

    def test_get_unknown(self, client):
        assert client.get(f'/api/v1/workflow-executions/{uuid.uuid4()}').status_code == 404


class TestHealth:

    def test_health(self, client):
        response = client.get('/api/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'
