"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints and the
`flask drain-queue` and `flask sweep-stale-jobs` CLI commands.
"""
import importlib

import click
from flask import Flask


def create_app():
    """Create and configure the Flask application."""
    from dispatch.config import SECRET_KEY
    from dispatch.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = SECRET_KEY

    # Register blueprints
    from dispatch.routes.cron import bp as cron_bp
    from dispatch.routes.sms import bp as sms_bp
    from dispatch.routes.triage import bp as triage_bp
    from dispatch.routes.webhook import bp as webhook_bp

    app.register_blueprint(webhook_bp)
    app.register_blueprint(sms_bp)
    app.register_blueprint(cron_bp)
    app.register_blueprint(triage_bp)

    @app.cli.command('drain-queue')
    @click.option('--batch-size', type=int, default=None, help='Max entries to process this run.')
    def drain_queue(batch_size):
        """Deliver queued notifications whose quiet hours have ended."""
        from dispatch import database
        from dispatch.services.queue_drain import process_notification_queue

        session = database.get_session()
        try:
            report = process_notification_queue(session, batch_size=batch_size)
        finally:
            session.close()
        click.echo(
            f"processed={report.processed} sent={report.sent} failed={report.failed} "
            f"requeued={report.requeued} skipped={report.skipped}"
        )

    @app.cli.command('sweep-stale-jobs')
    def sweep_stale_jobs():
        """Flag jobs left in `new` too long and alert their operators."""
        from dispatch import database
        from dispatch.services.stale_jobs import flag_stale_jobs

        session = database.get_session()
        try:
            report = flag_stale_jobs(session)
        finally:
            session.close()
        click.echo(f"processed={report.processed} alerted={report.alerted} skipped={report.skipped}")

    # Import models so Base.metadata knows about them (required for SQLAlchemy).
    # Schema is managed by Alembic - no init_db() call.
    importlib.import_module('dispatch.models.operator')
    importlib.import_module('dispatch.models.case')
    importlib.import_module('dispatch.models.notification_queue')
    importlib.import_module('dispatch.models.alert_context')
    importlib.import_module('dispatch.models.sms_log')

    return app
