"""aerr - errors with codes, attributes, stack traces and causes that log as one record.

Build a link with a code or a message, decorate it, then finalize it with
``err`` or chain it with ``wrap``:

    >>> import aerr
    >>> def find_user(user_id: str) -> None:
    ...     try:
    ...         query("SELECT * FROM users WHERE id = ?", user_id)
    ...     except TimeoutError as e:
    ...         b = aerr.code("REPOSITORY_ERROR").message("failed to find user").stack_trace()
    ...         raise b.with_("user_id", user_id).err(e)

Wrapping keeps the innermost captured stack, and ``wrap(None)`` is None so it
can be returned unconditionally:

    >>> return aerr.code("SERVICE_ERROR").message("user service failed").wrap(err)

When logged, the whole chain renders as one object:

    >>> aerr.aggregate(err).to_dict()
    {'code': 'SERVICE_ERROR',
     'message': 'user service failed: failed to find user: timed out',
     'attributes': {'user_id': '42'},
     'stacktrace': ['/app/users.py.(users.find_user):7', ...]}

Logging integrations:
    >>> from aerr.observability import get_logger     # structured logger
    >>> from aerr.integrations import stdlib           # stdlib logging
    >>> stdlib.install()
"""

from aerr.core import (
    EMPTY_AGGREGATE,
    SEPARATOR,
    Aggregate,
    Builder,
    CompositeError,
    FrameId,
    LinkRecord,
    Stack,
    aggregate,
    as_aerr,
    as_type,
    capture_stack,
    chain,
    code,
    flatten,
    flatten_dict,
    format_frame,
    format_stack,
    get_attributes,
    get_cause,
    get_code,
    get_message,
    get_stack,
    is_in_chain,
    message,
    render,
    resolve_frame,
    traces,
    unwrap,
)
from aerr.foundation.config import AerrSettings, clear_settings_cache, get_settings
from aerr.foundation.errors import AerrError, InvalidArgument

__version__ = "0.4.0"

__all__ = [
    # Building
    "code", "message", "Builder", "CompositeError",
    # Accessors & interop
    "as_aerr", "get_message", "get_code", "get_attributes", "get_stack", "get_cause",
    "unwrap", "chain", "is_in_chain", "as_type",
    # Aggregation
    "aggregate", "flatten", "flatten_dict", "traces", "render",
    "Aggregate", "LinkRecord", "EMPTY_AGGREGATE", "SEPARATOR",
    # Stack
    "Stack", "FrameId", "capture_stack", "resolve_frame", "format_frame", "format_stack",
    # Config & errors
    "AerrSettings", "get_settings", "clear_settings_cache", "AerrError", "InvalidArgument",
]
