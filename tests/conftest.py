"""
Pytest fixtures: Flask app on SQLite in memory, plus helpers to create definitions
"""

import uuid

import pytest
from sqlalchemy import text

from clinic_flows import create_app
from clinic_flows.config import Config
from clinic_flows.database import db
from clinic_flows.models import WorkflowDefinition


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_CREATE_ALL = True
    LOG_LEVEL = 'DEBUG'
    GEMINI_API_KEY = ''
    OPENAI_API_KEY = ''
    AI_MODEL = 'auto'
    WHATSAPP_TOKEN = 'test-token'
    WHATSAPP_PHONE_NUMBER_ID = '123456'
    WHATSAPP_API_URL = 'https://graph.example.test/v20.0'
    FLOW_MAX_DEPTH = 10


@pytest.fixture
def app():
    """App with the engine tables plus two business tables the steps write to"""
    app = create_app(TestConfig)

    with app.app_context():
        db.session.execute(text(
            "CREATE TABLE appointments ("
            "id VARCHAR(64) PRIMARY KEY, status VARCHAR(50), patient_name VARCHAR(255))"
        ))
        db.session.execute(text(
            "CREATE TABLE tasks ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, title VARCHAR(255), "
            "entity_id VARCHAR(64), priority INTEGER)"
        ))
        db.session.execute(text(
            "INSERT INTO appointments (id, status, patient_name) VALUES ('a1', 'pending', 'Sara')"
        ))
        db.session.commit()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_workflow(app):
    """Factory that stores a WorkflowDefinition and returns it"""

    def _make(steps, name='Test workflow', is_active=True, trigger_type='manual',
              trigger_config=None, ai_model='auto'):
        workflow = WorkflowDefinition(
            id=uuid.uuid4(),
            name=name,
            category='test',
            trigger_type=trigger_type,
            trigger_config=trigger_config or {},
            steps=steps,
            is_active=is_active,
            ai_model=ai_model,
        )
        db.session.add(workflow)
        db.session.commit()
        return workflow

    return _make
