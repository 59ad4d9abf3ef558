import math
from typing import Any, Dict, Union

import psycopg2
from psycopg2.errors import UniqueViolation
from loguru import logger

from .db import FeedbackStore
from .errors import ConflictError, StorageError, ValidationError
from .schemas import FeedbackSubmission, SubmitResponse

REQUIRED_FIELDS = (
    'email', 'client_name', 'project',
    'reactivity', 'deadlines', 'deliverables', 'professionalism',
)
RATING_FIELDS = ('reactivity', 'deadlines', 'deliverables', 'professionalism')
OPTIONAL_TEXT_FIELDS = (
    'reactivity_suggestion', 'deadlines_suggestion',
    'deliverables_suggestion', 'professionalism_suggestion',
    'global_comment',
)

UNIQUE_CONSTRAINT = 'uniq_client_project'
CONFLICT_MESSAGE = 'This client has already rated this project. Please choose a different project.'
SAVED_MESSAGE = 'Feedback saved.'


def _to_number(value: Any) -> Union[int, float, str]:
    """Read a rating as a number.

    Values that are not finite numbers are returned unchanged; the INT column
    rejects them and the failure surfaces as a storage error.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return value
    if not math.isfinite(number):
        return value
    return int(number) if number.is_integer() else number


def _is_unique_violation(exc: psycopg2.Error) -> bool:
    if isinstance(exc, UniqueViolation):
        return True
    msg = str(exc)
    return UNIQUE_CONSTRAINT in msg or 'duplicate key' in msg.lower()


def build_row(payload: FeedbackSubmission) -> Dict[str, Any]:
    """Check required fields and shape the submission into insert parameters."""
    data = payload.model_dump()
    for k in REQUIRED_FIELDS:
        if data[k] is None or data[k] == '':
            raise ValidationError(f'Missing field: {k}')

    row: Dict[str, Any] = {
        'email': str(data['email']).strip(),
        'client_name': str(data['client_name']).strip(),
        'project': str(data['project']).strip(),
    }
    for k in RATING_FIELDS:
        row[k] = _to_number(data[k])
    for k in OPTIONAL_TEXT_FIELDS:
        row[k] = data[k] or None
    return row


def submit_feedback(store: FeedbackStore, payload: FeedbackSubmission) -> SubmitResponse:
    row = build_row(payload)
    try:
        store.insert_feedback(row)
    except psycopg2.Error as e:
        if _is_unique_violation(e):
            logger.info('Duplicate feedback for client={} project={}', row['client_name'], row['project'])
            raise ConflictError(CONFLICT_MESSAGE)
        logger.error('Feedback insert failed: {}', e)
        raise StorageError(details=str(e).strip())
    logger.info('Feedback saved for client={} project={}', row['client_name'], row['project'])
    return SubmitResponse(ok=True, message=SAVED_MESSAGE)
