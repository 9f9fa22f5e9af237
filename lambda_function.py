"""AWS Lambda handler for KSE Schedule Sync."""
import json
import logging
import os
import time
from typing import Dict, Any

from coordinator.schedule_coordinator import ScheduleFetchCoordinator
from fetcher.kse_client import KSEScheduleClient
from processor.calendar_parser import CalendarRecordParser
from processor.datetime_decoder import DateTimeDecoder
from processor.errors import RetrievalFailed
from processor.models import GroupSelection
from processor.schedule_builder import ScheduleBuilder
from storage.schedule_store import DynamoDBScheduleStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def resolve_selection(event: Dict[str, Any], default: str) -> GroupSelection:
    """
    Determine the group selection for an invocation.

    Args:
        event: Invocation payload; may carry group_ids as a list or a
            comma-joined string
        default: Comma-joined group ids from the environment

    Returns:
        GroupSelection to fetch
    """
    group_ids = (event or {}).get('group_ids')
    if group_ids is None:
        return GroupSelection.from_string(default)
    if isinstance(group_ids, str):
        return GroupSelection.from_string(group_ids)
    return GroupSelection.from_string(','.join(str(group_id) for group_id in group_ids))


def _error_response(message: str, error: Exception, start_time: float,
                    **extra: Any) -> Dict[str, Any]:
    body = {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    }
    body.update(extra)
    return {'statusCode': 500, 'body': json.dumps(body)}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for KSE Schedule Sync.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    # Read configuration from environment variables
    table_name = os.environ.get('TABLE_NAME', 'kse-schedule')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    group_ids = os.environ.get('GROUP_IDS', '')
    days_ahead = int(os.environ.get('DAYS_AHEAD', '30'))
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    default_timezone = os.environ.get('DEFAULT_TIMEZONE', 'Europe/Kyiv')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    selection = resolve_selection(event, group_ids)
    logger.info(
        f"Lambda execution started",
        extra={
            'table_name': table_name,
            'group_ids': selection.to_string(),
            'days_ahead': days_ahead,
            'timeout_seconds': timeout_seconds
        }
    )

    try:
        client = KSEScheduleClient(timeout=timeout_seconds)
        coordinator = ScheduleFetchCoordinator(
            client,
            parser=CalendarRecordParser(DateTimeDecoder(default_timezone)),
            builder=ScheduleBuilder(timezone=default_timezone)
        )
        store = DynamoDBScheduleStore(table_name=table_name)

        try:
            logger.info("Fetching schedule from calendar")
            schedule = coordinator.fetch(selection, days_ahead=days_ahead)
        except RetrievalFailed as e:
            logger.error(
                f"Failed to fetch schedule: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response('Failed to fetch calendar', e, start_time)

        event_count = sum(len(day.events) for day in schedule)
        parse_errors = [str(error) for error in coordinator.last_errors]
        logger.info(f"Built schedule with {len(schedule)} days and {event_count} events")

        try:
            logger.info("Publishing schedule to DynamoDB")
            publish_result = store.publish(schedule)
        except Exception as e:
            # Nothing was deleted if the scan or the writes blew up
            logger.error(
                f"Error publishing schedule to DynamoDB: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(
                'Failed to publish schedule to DynamoDB', e, start_time,
                note='Previous schedule remains in DynamoDB'
            )

        duration = time.time() - start_time

        logger.info(
            f"Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'items_written': publish_result.written,
                'items_deleted': publish_result.deleted,
                'errors': publish_result.errors
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Schedule published successfully',
                'statistics': {
                    'days': len(schedule),
                    'events': event_count,
                    'parse_errors': len(parse_errors),
                    'items_written': publish_result.written,
                    'items_deleted': publish_result.deleted,
                    'duration_seconds': round(duration, 2)
                },
                'parse_errors': parse_errors,
                'errors': publish_result.errors
            })
        }

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return _error_response('Sync failed', e, start_time)
