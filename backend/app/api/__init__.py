from flask import Flask
from .analysis import analysis_bp
from .history import history_bp
from .agents import agents_bp
from .files import files_bp

def register_blueprints(app: Flask):
    """Register all API blueprints."""
    app.register_blueprint(analysis_bp)
    app.register_blueprint(history_bp)
    app.register_blueprint(agents_bp)
    app.register_blueprint(files_bp)
