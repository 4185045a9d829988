"""Audit trail of user actions, written to the ``user_actions`` logger."""

import logging
from typing import Any, Dict, Optional

from flask import has_request_context, request
from flask_login import current_user


user_actions_logger = logging.getLogger('user_actions')


class ActionType:
    """Constants for action types."""
    LOGIN = 'login'
    LOGOUT = 'logout'
    FAILED_LOGIN = 'failed_login'

    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'

    UPLOAD = 'upload'
    COMMENT = 'comment'
    MARK_READ = 'mark_read'


class ResourceType:
    """Constants for resource types."""
    USER = 'user'
    TEAM = 'team'
    TASK = 'task'
    EVENT = 'event'
    ROOM = 'room'
    NOTIFICATION = 'notification'
    FILE = 'file'
    SESSION = 'session'


def log_user_action(
    action_type: str,
    resource_type: str,
    action_description: str,
    resource_id: Optional[str] = None,
    new_values: Optional[Dict[str, Any]] = None,
    user=None,
):
    """Record an action by ``user`` (the signed-in user by default)."""
    actor = user if user is not None else current_user
    if actor is None or not getattr(actor, 'is_authenticated', False):
        return

    ip_address = request.remote_addr if has_request_context() else None
    user_actions_logger.info(
        "[%s] %s %s (ID: %s) - %s - IP: %s",
        actor.email,
        action_type.upper(),
        resource_type,
        resource_id,
        action_description,
        ip_address,
        extra={
            'user_id': actor.id,
            'action': action_type,
            'resource': resource_type,
            'resource_id': resource_id,
            'new_values': new_values,
        },
    )
