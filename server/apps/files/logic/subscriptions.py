"""Change subscriptions for an owner's files and account."""

from collections.abc import Callable

from server.apps.files.logic.validation import validate_owner_id
from server.apps.files.signals import ChangeEvent, connect_owner_listener


def subscribe(
    owner_id: str,
    on_change: Callable[[ChangeEvent], None],
) -> Callable[[], None]:
    """Observe every write to an owner's file records and account.

    ``on_change`` runs synchronously after each save or delete that goes
    through the metadata store. A listener that raises is logged and does
    not affect the write.

    Args:
        owner_id: Owner to watch.
        on_change: Callback receiving a ChangeEvent.

    Returns:
        ``unsubscribe`` function; calling it more than once is harmless.

    Raises:
        AuthenticationRequiredError: If owner_id is blank.
    """
    validate_owner_id(owner_id)
    return connect_owner_listener(owner_id, on_change)
