import os
from flask import Flask, jsonify
from config.config import config
from peerreview.database import init_db
from peerreview.scheduler import start_scheduler
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)


def create_app(config_name: str = None) -> Flask:
    """Application factory"""
    config_name = config_name or os.environ.get('FLASK_ENV', 'default')
    app_config = config.get(config_name, config['default'])

    app = Flask(__name__)
    app.config.from_object(app_config)

    from peerreview.routes import submissions, reviews, assignments, admin
    app.register_blueprint(submissions.bp, url_prefix='/api/submissions')
    app.register_blueprint(reviews.bp, url_prefix='/api/reviews')
    app.register_blueprint(assignments.bp, url_prefix='/api/assignments')
    app.register_blueprint(admin.bp, url_prefix='/api/admin')

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok'}), 200

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    init_db()

    if app_config.ENABLE_SCHEDULER and not app_config.TESTING:
        start_scheduler()

    logger.info(f"Peer review engine started ({config_name})")
    return app
