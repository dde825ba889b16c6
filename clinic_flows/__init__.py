from flask import Flask
from flask_cors import CORS
from flask_migrate import Migrate
import logging
from clinic_flows.config import Config
from clinic_flows.database import db, init_db


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # CORS: local dev origins plus CORS_ORIGINS (comma separated)
    allowed_origins = [
        'http://localhost:3000',
        'http://localhost:5173',
    ]
    env_origins = app.config.get('CORS_ORIGINS', '')
    if env_origins:
        allowed_origins.extend([origin.strip() for origin in env_origins.split(',')])

    CORS(app,
         resources={r"/api/*": {"origins": allowed_origins}},
         supports_credentials=False,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"])

    db.init_app(app)
    Migrate(app, db)
    init_db(app)

    from clinic_flows.routes import workflows
    app.register_blueprint(workflows.workflows_bp)

    from clinic_flows.routes import workflow_events
    app.register_blueprint(workflow_events.workflow_events_bp)

    from clinic_flows.routes import workflow_executions
    app.register_blueprint(workflow_executions.workflow_executions_bp)

    from clinic_flows.routes import health
    app.register_blueprint(health.bp)

    return app
