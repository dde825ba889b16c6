"""
Tests for WorkflowExecutor.trigger_workflow_by_event
"""

import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy.exc import OperationalError

from clinic_flows.flow_engine.executor import WorkflowExecutor, matches_trigger
from clinic_flows.models import Notification, WorkflowExecution


def event_workflow(make_workflow, steps, event_type='appointment_created', **kwargs):
    return make_workflow(
        steps,
        trigger_type='event',
        trigger_config={'event_type': event_type},
        **kwargs
    )


class TestMatchesTrigger:

    def test_containment(self):
        assert matches_trigger({'event_type': 'a', 'source': 'web'}, {'event_type': 'a'}) is True

    def test_different_value(self):
        assert matches_trigger({'event_type': 'b'}, {'event_type': 'a'}) is False

    def test_empty_config(self):
        assert matches_trigger(None, {'event_type': 'a'}) is False


class TestTriggerByEvent:
    """Every active listener runs; outcomes are collected per workflow"""

    @pytest.mark.asyncio
    async def test_one_fulfilled_one_rejected(self, make_workflow):
        """Two listeners, one of which fails: two settled outcomes, no exception"""
        ok = event_workflow(make_workflow, [{'type': 'send_notification', 'config': {'user_id': 'u1'}}])
        broken = event_workflow(make_workflow, [
            {'type': 'create_record', 'config': {'table': 'bad_table', 'data': {}}},
        ])

        outcomes = await WorkflowExecutor().trigger_workflow_by_event('appointment_created', 'appointment', 'a1')

        assert len(outcomes) == 2
        by_id = {o['workflow_id']: o for o in outcomes}

        assert by_id[str(ok.id)]['status'] == 'fulfilled'
        assert by_id[str(ok.id)]['value']['success'] is True

        assert by_id[str(broken.id)]['status'] == 'rejected'
        assert 'bad_table' in by_id[str(broken.id)]['reason']

        statuses = sorted(e.status for e in WorkflowExecution.query.all())
        assert statuses == ['completed', 'failed']
        failed = WorkflowExecution.query.filter_by(status='failed').one()
        assert by_id[str(broken.id)]['execution_id'] == str(failed.id)
        assert Notification.query.count() == 1

    @pytest.mark.asyncio
    async def test_inactive_and_other_events_ignored(self, make_workflow):
        event_workflow(make_workflow, [], is_active=False)
        event_workflow(make_workflow, [], event_type='appointment_cancelled')
        make_workflow([], trigger_type='manual', trigger_config={'event_type': 'appointment_created'})
        active = event_workflow(make_workflow, [])

        outcomes = await WorkflowExecutor().trigger_workflow_by_event('appointment_created', 'appointment', 'a1')

        assert [o['workflow_id'] for o in outcomes] == [str(active.id)]

    @pytest.mark.asyncio
    async def test_no_listeners(self, app):
        outcomes = await WorkflowExecutor().trigger_workflow_by_event('nothing', 'appointment', 'a1')

        assert outcomes == []

    @pytest.mark.asyncio
    async def test_context_passed_to_runs(self, make_workflow):
        event_workflow(make_workflow, [
            {'type': 'send_notification', 'config': {'message': 'Hello {{patient_name}}'}},
        ])

        await WorkflowExecutor().trigger_workflow_by_event(
            'appointment_created', 'appointment', 'a1', {'userId': 'u9', 'patient_name': 'Sara'}
        )

        notification = Notification.query.one()
        assert notification.user_id == 'u9'
        assert notification.message == 'Hello Sara'

    @pytest.mark.asyncio
    async def test_lookup_failure_raises(self, app):
        executor = WorkflowExecutor()
        failure = OperationalError('SELECT', {}, Exception('connection lost'))

        with patch.object(executor, 'find_event_workflows', side_effect=failure):
            with pytest.raises(OperationalError):
                await executor.trigger_workflow_by_event('appointment_created', 'appointment', 'a1')

    @pytest.mark.asyncio
    async def test_runs_are_concurrent_tasks(self, make_workflow):
        """Every matched workflow is started through execute_workflow"""
        first = event_workflow(make_workflow, [])
        second = event_workflow(make_workflow, [])
        executor = WorkflowExecutor()
        execute = AsyncMock(return_value={'success': True, 'execution_id': 'x', 'results': []})

        with patch.object(executor, 'execute_workflow', execute):
            outcomes = await executor.trigger_workflow_by_event('appointment_created', 'appointment', 'a1', {'k': 1})

        called_ids = sorted(call.args[0] for call in execute.call_args_list)
        assert called_ids == sorted([str(first.id), str(second.id)])
        assert all(o['status'] == 'fulfilled' for o in outcomes)
