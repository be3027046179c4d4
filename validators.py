"""
Input Validation & Sanitization Utilities
Provides validation for board, column, task, customer, user and comment API requests
"""
import re
from datetime import datetime, date
from typing import Dict, Any, List, Optional, Tuple
from dateutil import parser as date_parser
import logging

from services.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
MAX_TEXT_LENGTH = 10000

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if len(email) > MAX_NAME_LENGTH:
        return False, f"Email too long (maximum {MAX_NAME_LENGTH} characters)"

    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"

    return True, None


def validate_identifier(value: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate a row identifier (UUID string or integer)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or value is None:
        return False, "Identifier must be a string or integer"

    if isinstance(value, int):
        return True, None

    if not isinstance(value, str) or not value.strip():
        return False, "Identifier must be a non-empty string or integer"

    return True, None


def validate_id_list(values: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate an order-significant list of identifiers

    Args:
        values: Candidate list from a reorder request

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(values, list):
        return False, "Value must be an array of identifiers"

    for idx, value in enumerate(values):
        is_valid, error = validate_identifier(value)
        if not is_valid:
            return False, f"Item {idx}: {error}"

    seen = set()
    for value in values:
        key = str(value)
        if key in seen:
            return False, f"Duplicate identifier: {key}"
        seen.add(key)

    return True, None


def validate_order_index(value: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate a zero-based position

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, "Order must be an integer"

    if value < 0:
        return False, "Order must be zero or greater"

    return True, None


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing potentially dangerous characters

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    # Remove null bytes
    sanitized = value.replace('\x00', '')

    # Trim whitespace
    sanitized = sanitized.strip()

    # Limit length
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def parse_due_date(value: Any) -> Optional[datetime]:
    """
    Parse a due date from an ISO string, date or datetime

    Raises:
        ValidationError: If the value is not a recognizable date
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        raise ValidationError("due_date must be a date string", field='due_date')
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid due_date: {value}", field='due_date')


def validate_board_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate board create/update data

    Args:
        data: Request data dictionary
        partial: True for updates, where every field is optional

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    if not partial or 'name' in data:
        is_valid, error = validate_required_fields(data, ['name'])
        if not is_valid:
            return False, error

        is_valid, error = validate_string_length(data['name'], min_length=1, max_length=MAX_NAME_LENGTH)
        if not is_valid:
            return False, f"Invalid name: {error}"

    if data.get('description') is not None:
        is_valid, error = validate_string_length(data['description'], max_length=MAX_TEXT_LENGTH)
        if not is_valid:
            return False, f"Invalid description: {error}"

    return True, None


def validate_column_request(data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Validate column create/rename data"""
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    is_valid, error = validate_required_fields(data, ['name'])
    if not is_valid:
        return False, error

    is_valid, error = validate_string_length(data['name'], min_length=1, max_length=MAX_NAME_LENGTH)
    if not is_valid:
        return False, f"Invalid name: {error}"

    return True, None


def validate_task_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate task create/update data

    Args:
        data: Request data dictionary
        partial: True for updates; column_id is then not accepted

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    required = [] if partial else ['title', 'column_id']
    is_valid, error = validate_required_fields(data, required)
    if not is_valid:
        return False, error

    if not partial or 'title' in data:
        is_valid, error = validate_string_length(data.get('title'), min_length=1, max_length=MAX_NAME_LENGTH)
        if not is_valid:
            return False, f"Invalid title: {error}"

    if data.get('description') is not None:
        is_valid, error = validate_string_length(data['description'], max_length=MAX_TEXT_LENGTH)
        if not is_valid:
            return False, f"Invalid description: {error}"

    for field in ('column_id', 'customer_id', 'user_id'):
        if data.get(field) is not None:
            is_valid, error = validate_identifier(data[field])
            if not is_valid:
                return False, f"Invalid {field}: {error}"

    return True, None


def validate_move_request(data: Dict[str, Any], require_parent: bool = True) -> Tuple[bool, Optional[str]]:
    """
    Validate a single-item move request ({column_id, order} or {order})

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    required = ['column_id', 'order'] if require_parent else ['order']
    is_valid, error = validate_required_fields(data, required)
    if not is_valid:
        return False, error

    if require_parent:
        is_valid, error = validate_identifier(data['column_id'])
        if not is_valid:
            return False, f"Invalid column_id: {error}"

    is_valid, error = validate_order_index(data['order'])
    if not is_valid:
        return False, error

    return True, None


def validate_reorder_request(data: Dict[str, Any], list_field: str,
                             parent_field: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate a full reorder request, e.g. {column_id, tasks: [...]}

    Args:
        data: Request data dictionary
        list_field: Key holding the ordered ids
        parent_field: Key holding the parent id, when carried in the body

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    required = [list_field] + ([parent_field] if parent_field else [])
    missing = [field for field in required if field not in data or data[field] is None]
    if missing:
        return False, f"Missing required fields: {', '.join(missing)}"

    if parent_field:
        is_valid, error = validate_identifier(data[parent_field])
        if not is_valid:
            return False, f"Invalid {parent_field}: {error}"

    is_valid, error = validate_id_list(data[list_field])
    if not is_valid:
        return False, f"Invalid {list_field}: {error}"

    return True, None


def validate_customer_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate customer create/update data

    Args:
        data: Request data dictionary
        partial: True for updates, where every field is optional

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    if not partial or 'name' in data:
        is_valid, error = validate_required_fields(data, ['name'])
        if not is_valid:
            return False, error

        is_valid, error = validate_string_length(data['name'], min_length=1, max_length=MAX_NAME_LENGTH)
        if not is_valid:
            return False, f"Invalid name: {error}"

    if data.get('email'):
        is_valid, error = validate_email(data['email'])
        if not is_valid:
            return False, error

    for field in ('phone', 'company'):
        if data.get(field) is not None:
            is_valid, error = validate_string_length(data[field], max_length=MAX_NAME_LENGTH)
            if not is_valid:
                return False, f"Invalid {field}: {error}"

    for field in ('address', 'notes'):
        if data.get(field) is not None:
            is_valid, error = validate_string_length(data[field], max_length=MAX_TEXT_LENGTH)
            if not is_valid:
                return False, f"Invalid {field}: {error}"

    if data.get('social_profiles') is not None and not isinstance(data['social_profiles'], dict):
        return False, "Invalid social_profiles: Value must be an object"

    return True, None


def validate_user_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate user create/update data ({name, email})"""
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    required = [] if partial else ['name', 'email']
    is_valid, error = validate_required_fields(data, required)
    if not is_valid:
        return False, error

    if not partial or 'name' in data:
        is_valid, error = validate_string_length(data.get('name'), min_length=1, max_length=MAX_NAME_LENGTH)
        if not is_valid:
            return False, f"Invalid name: {error}"

    if not partial or 'email' in data:
        is_valid, error = validate_email(data.get('email'))
        if not is_valid:
            return False, error

    return True, None


def validate_comment_request(data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Validate comment create/update data ({content, user_id?})"""
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    is_valid, error = validate_required_fields(data, ['content'])
    if not is_valid:
        return False, error

    is_valid, error = validate_string_length(data['content'], min_length=1, max_length=MAX_TEXT_LENGTH)
    if not is_valid:
        return False, f"Invalid content: {error}"

    if data.get('user_id') is not None:
        is_valid, error = validate_identifier(data['user_id'])
        if not is_valid:
            return False, f"Invalid user_id: {error}"

    return True, None


def require_valid(result: Tuple[bool, Optional[str]], field: Optional[str] = None):
    """Raise ValidationError for a failed (is_valid, error) result"""
    is_valid, error = result
    if not is_valid:
        logger.debug(f"Validation failed: {error}")
        raise ValidationError(error, field=field)


def format_success_response(data: Any, message: str = "Success") -> Dict[str, Any]:
    """
    Format success response for consistent API responses

    Args:
        data: Response data
        message: Success message

    Returns:
        Success response dictionary
    """
    return {
        'success': True,
        'message': message,
        'data': data
    }
