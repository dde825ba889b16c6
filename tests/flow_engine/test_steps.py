"""
Tests for step record parsing
"""

import pytest

from clinic_flows.flow_engine.exceptions import StepConfigError, WorkflowDefinitionError
from clinic_flows.flow_engine.steps import (
    AIResponseStep,
    CreateRecordStep,
    SendNotificationStep,
    SendWhatsAppStep,
    StepType,
    TriggerWorkflowStep,
    UpdateStatusStep,
    parse_step,
    parse_steps,
)


class TestParseStep:
    """Each kind builds its own dataclass"""

    def test_ai_response(self):
        step = parse_step({'type': 'ai_response', 'config': {'prompt': 'Summarise {{entity_id}}'}})

        assert isinstance(step, AIResponseStep)
        assert step.type == StepType.AI_RESPONSE
        assert step.prompt == 'Summarise {{entity_id}}'
        assert step.condition is None

    def test_send_notification_defaults(self):
        """Title and message fall back to defaults"""
        step = parse_step({'type': 'send_notification', 'config': {}})

        assert isinstance(step, SendNotificationStep)
        assert step.user_id is None
        assert step.title == 'Notification'
        assert step.message == 'You have a new notification'

    def test_send_notification_accepts_camel_case_user(self):
        step = parse_step({'type': 'send_notification', 'config': {'userId': 'u1'}})

        assert step.user_id == 'u1'

    def test_create_record(self):
        step = parse_step({
            'type': 'create_record',
            'config': {'table': 'tasks', 'data': {'title': 'Call {{patient}}'}},
        })

        assert isinstance(step, CreateRecordStep)
        assert step.table == 'tasks'
        assert step.data == {'title': 'Call {{patient}}'}

    def test_update_status(self):
        step = parse_step({
            'type': 'update_status',
            'config': {'table': 'appointments', 'status_field': 'status', 'status_value': 'confirmed'},
        })

        assert isinstance(step, UpdateStatusStep)
        assert step.status_value == 'confirmed'

    def test_send_whatsapp(self):
        step = parse_step({'type': 'send_whatsapp', 'config': {'phone': '966500000000', 'message': 'Hi'}})

        assert isinstance(step, SendWhatsAppStep)

    def test_trigger_workflow(self):
        step = parse_step({'type': 'trigger_workflow', 'config': {'workflow_id': 'abc'}})

        assert isinstance(step, TriggerWorkflowStep)
        assert step.workflow_id == 'abc'

    def test_condition_kept(self):
        step = parse_step({
            'type': 'ai_response',
            'config': {'prompt': 'x'},
            'condition': "{{status}} == 'new'",
        })

        assert step.condition == "{{status}} == 'new'"


class TestInvalidSteps:
    """Invalid records are definition errors"""

    def test_unknown_type(self):
        with pytest.raises(StepConfigError) as exc_info:
            parse_step({'type': 'send_fax', 'config': {}}, 2)

        assert 'Unknown step type: send_fax' in str(exc_info.value)
        assert str(exc_info.value).startswith('Step 2:')
        assert exc_info.value.step_index == 2

    def test_is_definition_error(self):
        with pytest.raises(WorkflowDefinitionError):
            parse_step({'config': {}})

    def test_missing_required_field(self):
        with pytest.raises(StepConfigError) as exc_info:
            parse_step({'type': 'create_record', 'config': {'data': {}}}, 0)

        assert "'table'" in str(exc_info.value)

    def test_update_status_requires_value(self):
        with pytest.raises(StepConfigError):
            parse_step({'type': 'update_status', 'config': {'table': 't', 'status_field': 'status'}})

    def test_data_must_be_object(self):
        with pytest.raises(StepConfigError):
            parse_step({'type': 'create_record', 'config': {'table': 't', 'data': ['x']}})

    def test_condition_must_be_string(self):
        with pytest.raises(StepConfigError):
            parse_step({'type': 'ai_response', 'config': {}, 'condition': 5})

    def test_steps_must_be_list(self):
        with pytest.raises(StepConfigError):
            parse_steps({'type': 'ai_response'})


class TestParseSteps:

    def test_order_preserved(self):
        steps = parse_steps([
            {'type': 'send_notification', 'config': {}},
            {'type': 'trigger_workflow', 'config': {'workflow_id': 'w2'}},
        ])

        assert [s.type for s in steps] == [StepType.SEND_NOTIFICATION, StepType.TRIGGER_WORKFLOW]

    def test_none_is_empty(self):
        assert parse_steps(None) == []
