"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.conversation.app.command import (
    create_or_get_session_use_case,
    mark_read_use_case,
    post_message_use_case,
    typing_use_case,
)
from src.service.conversation.app.query import (
    get_session_use_case,
    list_messages_use_case,
    list_sessions_use_case,
)
from src.service.lease.app.command import cancel_lease_use_case, create_lease_use_case
from src.service.lease.app.query import (
    get_lease_for_product_use_case,
    get_lease_use_case,
    list_my_leases_use_case,
)
from src.service.shared_kernel.driving_adapter.auth import principal_dependency


WIRE_MODULES: list[ModuleType] = [
    create_lease_use_case,
    cancel_lease_use_case,
    get_lease_use_case,
    get_lease_for_product_use_case,
    list_my_leases_use_case,
    create_or_get_session_use_case,
    post_message_use_case,
    mark_read_use_case,
    typing_use_case,
    get_session_use_case,
    list_sessions_use_case,
    list_messages_use_case,
    principal_dependency,
]
