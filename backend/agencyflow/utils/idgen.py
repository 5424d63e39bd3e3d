"""ID Generation Utilities"""
import uuid
from datetime import datetime
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'TSK', 'PRJ', 'EVT')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('TSK')
        'TSK-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_work_item_id(kind: str) -> str:
    """Generate work item ID prefixed by its kind (TSK, AST, REV)"""
    prefixes = {"TASK": "TSK", "ASSET": "AST", "REVISION": "REV"}
    return generate_id(prefixes.get(kind, "WI"))


def generate_event_id() -> str:
    """Generate transition / chat event ID"""
    return generate_id("EVT")


def generate_notification_id() -> str:
    """Generate notification ID"""
    return generate_id("NTF")


def generate_audit_entry_id() -> str:
    """Generate audit entry ID"""
    return generate_id("AUD")


def generate_chat_message_id() -> str:
    """Generate chat message ID"""
    return generate_id("MSG")


def generate_session_id() -> str:
    """Generate broker session ID"""
    return generate_id("SES")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
