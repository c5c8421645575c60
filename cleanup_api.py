"""Catalog cleanup API endpoints."""
from flask import Blueprint, jsonify, request, current_app, g
from marshmallow import ValidationError
import logging

from errors import CleanupError, PreconditionError
from repositories import CleanupRunRepository
from schemas import (
    ActionTokenRequestSchema, ImageReviewRequestSchema,
    DuplicateCleanupRequestSchema, SummaryQuerySchema, CleanupRunSchema, OPERATIONS
)
from security import ACTION_TOKEN_HEADER, require_capability

# Configure logging
logger = logging.getLogger(__name__)

# Create Blueprint
cleanup_bp = Blueprint('cleanup', __name__, url_prefix='/api/cleanup')

# Initialize schemas
action_token_request_schema = ActionTokenRequestSchema()
image_review_request_schema = ImageReviewRequestSchema()
duplicate_cleanup_request_schema = DuplicateCleanupRequestSchema()
summary_query_schema = SummaryQuerySchema()
cleanup_runs_schema = CleanupRunSchema(many=True)
cleanup_run_schema = CleanupRunSchema()


def _extension():
    return current_app.extensions['catalog_cleanup']


def _consume_action_token(action: str, body_token) -> None:
    token = request.headers.get(ACTION_TOKEN_HEADER) or body_token
    _extension()['tokens'].consume(token, action, g.operator)


def _record_run(result) -> None:
    """Store the run in the history; a failure here never fails the operation."""
    db = _extension()['db']
    if db is None or not db.is_initialized:
        return
    try:
        with db.session_scope() as session:
            CleanupRunRepository(session).record_result(result, triggered_by=g.operator)
    except Exception as e:
        logger.error(f"Could not record {result.operation} run: {str(e)}")


@cleanup_bp.route('/tokens', methods=['POST'])
@require_capability()
def issue_action_token():
    """Issue a one-time token for one of the cleanup actions."""
    data = action_token_request_schema.load(request.get_json(silent=True) or {})
    tokens = _extension()['tokens']
    token = tokens.issue(data['action'], g.operator)
    return jsonify({
        'action': data['action'],
        'action_token': token,
        'expires_in': tokens.ttl_seconds
    }), 201


@cleanup_bp.route('/image-review', methods=['POST'])
@require_capability()
def run_image_review():
    """Move published products without image to review."""
    data = image_review_request_schema.load(request.get_json(silent=True) or {})
    _consume_action_token('image_review', data['action_token'])

    result = _extension()['service'].run_image_review_scan()
    _record_run(result)
    logger.info(f"Image review by {g.operator}: {result.succeeded} updated, {len(result.failed_ids)} failed")
    return jsonify(result.to_dict()), 200


@cleanup_bp.route('/duplicates', methods=['POST'])
@require_capability()
def run_duplicate_cleanup():
    """Trash all duplicates, keeping the oldest product of each group."""
    data = duplicate_cleanup_request_schema.load(request.get_json(silent=True) or {})
    _consume_action_token('duplicate_cleanup', data['action_token'])

    result = _extension()['service'].run_duplicate_cleanup(dry_run=data['dry_run'])
    _record_run(result)
    logger.info(
        f"Duplicate cleanup by {g.operator}{' (dry run)' if result.dry_run else ''}: "
        f"{result.succeeded} trashed, {len(result.failed_ids)} failed"
    )
    return jsonify(result.to_dict()), 200


@cleanup_bp.route('/duplicates/preview', methods=['GET'])
@require_capability()
def preview_duplicates():
    """List the duplicate groups the cleanup would act on."""
    report = _extension()['service'].preview_duplicates()
    return jsonify(report.to_dict()), 200


@cleanup_bp.route('/summary', methods=['GET'])
@require_capability()
def get_summary():
    """Recent runs and totals per operation."""
    args = summary_query_schema.load(request.args)
    db = _extension()['db']
    if db is None or not db.is_initialized:
        raise PreconditionError("Run history is not available: database not initialized")

    limit = args['limit'] or current_app.config.get('SUMMARY_RUN_LIMIT', 10)
    with db.session_scope() as session:
        repo = CleanupRunRepository(session)
        runs = repo.get_recent_runs(operation=args['operation'], limit=limit)
        last_runs = {}
        for operation in OPERATIONS:
            last_run = repo.get_last_run(operation)
            last_runs[operation] = cleanup_run_schema.dump(last_run) if last_run else None

        payload = {
            'runs': cleanup_runs_schema.dump(runs),
            'last_runs': last_runs,
            'totals': repo.get_totals()
        }

    return jsonify(payload), 200


@cleanup_bp.errorhandler(CleanupError)
def handle_cleanup_error(error):
    return jsonify(error.to_dict()), error.status_code


@cleanup_bp.errorhandler(ValidationError)
def handle_validation_error(error):
    return jsonify({'error': 'validation_error', 'errors': error.messages}), 400
