"""
Ordered List Reconciler - dense position maintenance for sibling sets.

Tasks are ordered within their column and columns within their board. For
every parent list the member orders are always exactly 0..n-1. All reads and
writes run on the caller's session so one request is one transaction; see
services.transactions for commit, rollback and conflict retry.
"""

import logging
from collections import Counter
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class SiblingRepository:
    """
    Row access for one sibling-set kind.

    Args:
        session: Active SQLAlchemy session
        model: Item model with an ``order`` column
        parent_model: Parent model with an ``order_version`` column
        parent_key: Name of the item's foreign key to the parent
    """

    def __init__(self, session: Session, model, parent_model, parent_key: str):
        self.session = session
        self.model = model
        self.parent_model = parent_model
        self.parent_key = parent_key

    @property
    def parent_column(self):
        return getattr(self.model, self.parent_key)

    @property
    def item_label(self) -> str:
        return self.model.__name__

    @property
    def parent_label(self) -> str:
        return self.parent_model.__name__

    def parent_id_of(self, item) -> str:
        return getattr(item, self.parent_key)

    def get_item(self, item_id: str, lock: bool = True):
        """Fetch an item by id, re-reading persisted state."""
        query = self.session.query(self.model).filter(self.model.id == item_id)
        if lock:
            query = query.with_for_update()
        return query.populate_existing().first()

    def claim_parent(self, parent_id: str):
        """
        Lock the parent row and bump its order_version.

        The bump is conditional on the version just read, so a writer that
        raced us between read and write is detected even where the database
        ignores FOR UPDATE.
        """
        parent = self.session.query(self.parent_model).filter(
            self.parent_model.id == parent_id
        ).with_for_update().populate_existing().first()

        if parent is None:
            raise NotFoundError(f"{self.parent_label} {parent_id} not found")

        version = parent.order_version or 0
        updated = self.session.query(self.parent_model).filter(
            self.parent_model.id == parent_id,
            self.parent_model.order_version == version
        ).update(
            {self.parent_model.order_version: version + 1},
            synchronize_session=False
        )
        self.session.expire(parent, ['order_version'])

        if updated != 1:
            raise ConflictError(
                f"{self.parent_label} {parent_id} changed while being reordered"
            )
        return parent

    def read_siblings(self, parent_id: str) -> List:
        """All members of a parent list, sorted by current order."""
        return self.session.query(self.model).filter(
            self.parent_column == parent_id
        ).order_by(
            self.model.order, self.model.id
        ).with_for_update().populate_existing().all()

    def max_order(self, parent_id: str) -> Optional[int]:
        return self.session.query(func.max(self.model.order)).filter(
            self.parent_column == parent_id
        ).scalar()

    def count(self, parent_id: str) -> int:
        return self.session.query(func.count(self.model.id)).filter(
            self.parent_column == parent_id
        ).scalar() or 0

    def shift(self, parent_id: str, delta: int,
              lower: Optional[int] = None, upper: Optional[int] = None) -> int:
        """Add delta to every order in the inclusive range [lower, upper]."""
        query = self.session.query(self.model).filter(self.parent_column == parent_id)
        if lower is not None:
            query = query.filter(self.model.order >= lower)
        if upper is not None:
            query = query.filter(self.model.order <= upper)
        return query.update(
            {self.model.order: self.model.order + delta},
            synchronize_session='fetch'
        )

    def write_orders(self, parent_id: str, orders: Dict[str, int]) -> int:
        """
        Apply an id -> order mapping to members of parent_id.

        Rows whose order already matches are not written.

        Returns:
            Number of rows changed
        """
        siblings = {item.id: item for item in self.read_siblings(parent_id)}
        foreign = [item_id for item_id in orders if item_id not in siblings]
        if foreign:
            raise ValidationError(
                f"{self.item_label} ids {foreign} do not belong to "
                f"{self.parent_label} {parent_id}"
            )

        written = 0
        for item_id, new_order in orders.items():
            item = siblings[item_id]
            if item.order != new_order:
                item.order = new_order
                written += 1
        self.session.flush()
        return written

    def reparent_and_order(self, item, new_parent_id: str, new_order: int):
        setattr(item, self.parent_key, new_parent_id)
        item.order = new_order
        self.session.flush()
        # Drop relationship state that still points at the old parent
        self.session.expire(item)

    def set_order(self, item, new_order: int):
        item.order = new_order
        self.session.flush()

    def delete_item(self, item):
        self.session.query(self.model).filter(
            self.model.id == item.id
        ).delete(synchronize_session='fetch')


class OrderedListReconciler:
    """
    Computes and applies order changes for one sibling-set kind.

    Never trusts client-reported positions: every operation re-reads the
    persisted rows before computing new values.
    """

    def __init__(self, repository: SiblingRepository):
        self.repo = repository

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def ordered_ids(self, parent_id: str) -> List[str]:
        return [item.id for item in self.repo.read_siblings(parent_id)]

    def _require_item(self, item_id: str, lock: bool = True):
        item = self.repo.get_item(item_id, lock=lock)
        if item is None:
            raise NotFoundError(f"{self.repo.item_label} {item_id} not found")
        return item

    def _require_member(self, item_id: str, parent_id: str, unlocked_read: bool = False):
        """
        Lock the item and check it is still a member of parent_id.

        When parent_id came from an unlocked read, an item found elsewhere
        was moved by a concurrent writer and the unit of work is retried.
        """
        item = self._require_item(item_id)
        if self.repo.parent_id_of(item) == parent_id:
            return item
        if unlocked_read:
            raise ConflictError(
                f"{self.repo.item_label} {item_id} left {self.repo.parent_label} "
                f"{parent_id} before it was locked"
            )
        raise ValidationError(
            f"{self.repo.item_label} {item_id} does not belong to "
            f"{self.repo.parent_label} {parent_id}"
        )

    @staticmethod
    def _require_index(value, field: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{field} must be an integer", field=field)
        if value < 0:
            raise ValidationError(f"{field} must be zero or greater", field=field)
        return value

    # ------------------------------------------------------------------
    # Append-on-create
    # ------------------------------------------------------------------

    def on_create(self, parent_id: str) -> int:
        """
        Order for a new item appended to parent_id.

        The parent is claimed so concurrent creates serialize; the caller
        inserts the new row in the same transaction.
        """
        self.repo.claim_parent(parent_id)
        current_max = self.repo.max_order(parent_id)
        order = 0 if current_max is None else current_max + 1
        logger.debug(f"Append to {self.repo.parent_label} {parent_id} at {order}")
        return order

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def on_move(self, item_id: str, to_parent_id: str, to_index: Optional[int]) -> int:
        """
        Move an item to to_index of to_parent_id from wherever it is now.

        The current parent comes from an unlocked read and only decides which
        lists to claim. If the item leaves that parent before the claims are
        taken, ConflictError is raised and run_in_transaction retries.

        Returns:
            The item's final order
        """
        item = self._require_item(item_id, lock=False)
        from_parent_id = self.repo.parent_id_of(item)

        if from_parent_id == to_parent_id:
            self.on_move_same_list(
                to_parent_id, item_id, item.order, to_index, unlocked_read=True
            )
            return self.repo.get_item(item_id, lock=False).order

        return self.on_move_cross_list(
            item_id, from_parent_id, to_parent_id, to_index, unlocked_read=True
        )

    def on_move_same_list(self, parent_id: str, item_id: str,
                          from_order: Optional[int], to_order: int,
                          unlocked_read: bool = False):
        """
        Move an item to to_order within its own list by gap-shift.

        Only items between the source and the target position are touched.
        from_order is what the client believed; the persisted order wins.
        """
        to_order = self._require_index(to_order, 'order')
        self.repo.claim_parent(parent_id)
        item = self._require_member(item_id, parent_id, unlocked_read)

        size = self.repo.count(parent_id)
        if to_order > size - 1:
            raise ValidationError(
                f"order {to_order} is out of range for a list of {size}",
                field='order'
            )

        old_order = item.order
        if from_order is not None and from_order != old_order:
            logger.debug(
                f"{self.repo.item_label} {item_id} reported at {from_order}, "
                f"persisted at {old_order}"
            )

        if old_order == to_order:
            return

        if old_order < to_order:
            self.repo.shift(parent_id, -1, lower=old_order + 1, upper=to_order)
        else:
            self.repo.shift(parent_id, 1, lower=to_order, upper=old_order - 1)
        self.repo.set_order(item, to_order)

        logger.info(
            f"Moved {self.repo.item_label} {item_id} in {parent_id}: "
            f"{old_order} -> {to_order}"
        )

    def on_move_cross_list(self, item_id: str, from_parent_id: str,
                           to_parent_id: str, to_index: Optional[int] = None,
                           unlocked_read: bool = False) -> int:
        """
        Move an item into another list.

        Makes room in the target, reparents the item, then closes the gap in
        the source. to_index is clamped to the end of the target list; None
        appends.

        Returns:
            The item's final order in the target list
        """
        if to_index is not None:
            to_index = self._require_index(to_index, 'order')

        if from_parent_id == to_parent_id:
            self.repo.claim_parent(to_parent_id)
            size = self.repo.count(to_parent_id)
            target = size - 1 if to_index is None else min(to_index, size - 1)
            self.on_move_same_list(
                to_parent_id, item_id, None, max(target, 0), unlocked_read
            )
            return target

        # Fixed lock order so two opposite moves cannot deadlock
        for parent_id in sorted([from_parent_id, to_parent_id]):
            self.repo.claim_parent(parent_id)

        item = self._require_member(item_id, from_parent_id, unlocked_read)

        target_size = self.repo.count(to_parent_id)
        if to_index is None or to_index >= target_size:
            current_max = self.repo.max_order(to_parent_id)
            new_order = 0 if current_max is None else current_max + 1
        else:
            self.repo.shift(to_parent_id, 1, lower=to_index)
            new_order = to_index

        self.repo.reparent_and_order(item, to_parent_id, new_order)
        self.resequence(from_parent_id)
        # No-op on a dense target; heals rows written before this code existed
        self.resequence(to_parent_id)

        logger.info(
            f"Moved {self.repo.item_label} {item_id}: "
            f"{from_parent_id} -> {to_parent_id} at {new_order}"
        )
        return self.repo.get_item(item_id, lock=False).order

    # ------------------------------------------------------------------
    # Re-sequencing
    # ------------------------------------------------------------------

    def resequence(self, parent_id: str) -> int:
        """Rewrite orders of parent_id to 0..n-1 keeping relative order."""
        siblings = self.repo.read_siblings(parent_id)
        orders = {item.id: index for index, item in enumerate(siblings)}
        written = self.repo.write_orders(parent_id, orders)
        if written:
            logger.debug(
                f"Resequenced {self.repo.parent_label} {parent_id}: "
                f"{written} of {len(siblings)} rows"
            )
        return written

    def on_explicit_reorder(self, parent_id: str, ordered_ids: Sequence[str]):
        """
        Assign order = index for each id of ordered_ids.

        ordered_ids must be exactly the current members of parent_id; a
        mismatch means the client view is stale and nothing is written.
        """
        if not isinstance(ordered_ids, (list, tuple)):
            raise ValidationError("ids must be a list", field='ids')
        ordered_ids = [str(item_id) for item_id in ordered_ids]

        duplicates = sorted(i for i, n in Counter(ordered_ids).items() if n > 1)
        if duplicates:
            raise ValidationError(f"Duplicate ids: {duplicates}", field='ids')

        self.repo.claim_parent(parent_id)
        current = set(self.ordered_ids(parent_id))

        foreign = [i for i in ordered_ids if i not in current]
        if foreign:
            raise ValidationError(
                f"All {self.repo.item_label} ids must belong to "
                f"{self.repo.parent_label} {parent_id}",
                field='ids'
            )
        if len(ordered_ids) != len(current):
            raise ValidationError(
                f"Expected {len(current)} ids for {self.repo.parent_label} "
                f"{parent_id}, got {len(ordered_ids)}",
                field='ids'
            )

        written = self.repo.write_orders(
            parent_id,
            {item_id: index for index, item_id in enumerate(ordered_ids)}
        )
        logger.info(
            f"Reordered {self.repo.parent_label} {parent_id}: {written} rows changed"
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def on_delete(self, item_id: str, clear_dependents: Optional[Callable] = None) -> str:
        """
        Delete an item and close the gap it leaves.

        clear_dependents(item) runs once the parent and the item are locked,
        right before the row is deleted. Dependent rows it does not remove
        must already be gone or moved.

        Returns:
            The former parent id
        """
        # Lock order: parent row, then item row
        parent_id = self.repo.parent_id_of(self._require_item(item_id, lock=False))
        self.repo.claim_parent(parent_id)
        item = self._require_member(item_id, parent_id, unlocked_read=True)
        if clear_dependents is not None:
            clear_dependents(item)
        self.repo.delete_item(item)
        self.resequence(parent_id)
        logger.info(f"Deleted {self.repo.item_label} {item_id} from {parent_id}")
        return parent_id


def task_reconciler(session: Session) -> OrderedListReconciler:
    """Reconciler for tasks within a column."""
    from database.models import BoardColumn, Task
    return OrderedListReconciler(
        SiblingRepository(session, Task, BoardColumn, 'column_id')
    )


def column_reconciler(session: Session) -> OrderedListReconciler:
    """Reconciler for columns within a board."""
    from database.models import Board, BoardColumn
    return OrderedListReconciler(
        SiblingRepository(session, BoardColumn, Board, 'board_id')
    )
