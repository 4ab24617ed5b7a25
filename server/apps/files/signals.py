"""Signal handlers for files app.

Forwards ORM writes of file records and accounts to per-owner change
listeners.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from django.db.models import Model
from django.db.models.signals import post_delete, post_save

from server.apps.files.models import Account, FileRecord

logger = logging.getLogger(__name__)

_WATCHED_MODELS: tuple[type[Model], ...] = (FileRecord, Account)


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file record or account of an owner was written or deleted."""

    owner_id: str
    kind: Literal['file', 'account']
    action: Literal['saved', 'deleted']
    object_id: str


def _describe(instance: Model) -> tuple[str, Literal['file', 'account']]:
    if isinstance(instance, FileRecord):
        return instance.owner_id, 'file'
    return str(instance.pk), 'account'


def connect_owner_listener(
    owner_id: str,
    on_change: Callable[[ChangeEvent], None],
) -> Callable[[], None]:
    """Connect a listener to changes of one owner's data.

    Args:
        owner_id: Owner to watch.
        on_change: Called with a ChangeEvent after every matching write.

    Returns:
        Function that disconnects the listener.
    """
    dispatch_uid = f'owner-listener-{uuid.uuid4().hex}'

    def notify(instance: Model, action: Literal['saved', 'deleted']) -> None:
        instance_owner, kind = _describe(instance)
        if instance_owner != owner_id:
            return
        event = ChangeEvent(
            owner_id=owner_id,
            kind=kind,
            action=action,
            object_id=str(instance.pk),
        )
        try:
            on_change(event)
        except Exception:
            # Log error but don't raise - the write already succeeded
            logger.exception('Change listener failed for %s', event)

    def handle_save(sender: type[Model], instance: Model, **kwargs: object) -> None:
        notify(instance, 'saved')

    def handle_delete(
        sender: type[Model],
        instance: Model,
        **kwargs: object,
    ) -> None:
        notify(instance, 'deleted')

    for model in _WATCHED_MODELS:
        post_save.connect(
            handle_save,
            sender=model,
            weak=False,
            dispatch_uid=dispatch_uid,
        )
        post_delete.connect(
            handle_delete,
            sender=model,
            weak=False,
            dispatch_uid=dispatch_uid,
        )
    logger.debug('Change listener connected for owner %s', owner_id)

    def disconnect() -> None:
        for watched in _WATCHED_MODELS:
            post_save.disconnect(sender=watched, dispatch_uid=dispatch_uid)
            post_delete.disconnect(sender=watched, dispatch_uid=dispatch_uid)
        logger.debug('Change listener disconnected for owner %s', owner_id)

    return disconnect
