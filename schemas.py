"""Schema definitions for request/response validation."""
from marshmallow import Schema, fields, validate

OPERATIONS = ['image_review', 'duplicate_cleanup']

class ActionTokenRequestSchema(Schema):
    """Schema for one-time action token requests."""
    action = fields.String(required=True, validate=validate.OneOf(OPERATIONS))

class ImageReviewRequestSchema(Schema):
    """Schema for image review scan requests."""
    action_token = fields.String(load_default=None)

class DuplicateCleanupRequestSchema(Schema):
    """Schema for duplicate cleanup requests."""
    action_token = fields.String(load_default=None)
    dry_run = fields.Boolean(load_default=False)

class SummaryQuerySchema(Schema):
    """Schema for summary view query parameters."""
    operation = fields.String(validate=validate.OneOf(OPERATIONS), load_default=None)
    limit = fields.Integer(validate=validate.Range(min=1, max=100), load_default=None)

class CleanupRunSchema(Schema):
    """Schema for cleanup run history responses."""
    id = fields.Integer(required=True)
    operation = fields.String(required=True)
    status = fields.String(required=True, validate=validate.OneOf(['success', 'partial', 'failed']))
    dry_run = fields.Boolean()
    triggered_by = fields.String(allow_none=True)
    processed = fields.Integer()
    succeeded = fields.Integer()
    failed = fields.Integer()
    failed_ids = fields.List(fields.Raw(), allow_none=True)
    message = fields.String(allow_none=True)
    started_at = fields.DateTime(required=True)
    completed_at = fields.DateTime(allow_none=True)
    duration = fields.Integer(allow_none=True)
