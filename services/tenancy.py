"""
Tenancy Service

The acting user and tenant are passed explicitly into every core
operation; nothing reads ambient request state.
"""

import re
from dataclasses import dataclass

from .errors import NotFound


@dataclass(frozen=True)
class Actor:
    """Identity supplied by the external identity provider."""
    user_id: str
    bakery_id: int
    is_platform_admin: bool = False


def get_scoped(model, entity_id, bakery_id, for_update=False):
    """
    Load model row entity_id only if it belongs to bakery_id.

    Rows owned by another bakery raise NotFound exactly like missing rows.
    With for_update the row is locked until the surrounding transaction ends.
    """
    label = entity_label(model)
    try:
        entity_id = int(entity_id)
    except (TypeError, ValueError):
        raise NotFound(label, entity_id)

    query = model.query.filter(model.id == entity_id, model.bakery_id == bakery_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    row = query.first()
    if row is None:
        raise NotFound(label, entity_id)
    return row


def scoped_query(model, bakery_id):
    """Base query for model restricted to one bakery."""
    return model.query.filter(model.bakery_id == bakery_id)


def entity_label(model):
    """InventoryLot -> 'Inventory lot'"""
    return re.sub(r'(?<!^)(?=[A-Z])', ' ', model.__name__).capitalize()
