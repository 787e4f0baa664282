"""
links.py — Teacher-to-class link reconciliation.

Given the classes a teacher should be linked to and the links currently
stored, compute the minimal add/remove plan and apply it as one unit of
work:
- classes in the desired set without a link are added
- links whose class is not desired are removed
- everything else is kept untouched
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from academics.errors import AssignmentNotFound, DuplicateAssignment, ReconciliationFailed
from academics.records import AssignmentLink, ReconciliationPlan, ReconciliationResult
from academics.store import LinkStore

logger = logging.getLogger(__name__)


def reconcile(
    teacher_id: str,
    desired_class_ids: Iterable[str],
    actual_links: Iterable[AssignmentLink],
) -> ReconciliationPlan:
    desired = frozenset(desired_class_ids)
    actual = frozenset(actual_links)
    linked = {link.class_id for link in actual}

    to_remove = frozenset(link for link in actual if link.class_id not in desired)
    return ReconciliationPlan(
        teacher_id=teacher_id,
        to_add=desired - linked,
        to_remove=to_remove,
        to_keep=actual - to_remove,
    )


def apply(plan: ReconciliationPlan, store: LinkStore) -> ReconciliationResult:
    """
    Apply ``plan`` inside a single transaction.

    Deletions run first, then insertions, in a stable order. Any failure
    rolls the whole transaction back and is reported as ReconciliationFailed.
    """
    try:
        with store.transaction() as conn:
            for stale in sorted(plan.to_remove, key=lambda item: item.class_id):
                store.delete(conn, stale.id)
            added = [
                store.insert(conn, plan.teacher_id, class_id)
                for class_id in sorted(plan.to_add)
            ]
    except Exception as exc:
        logger.exception("Reconciliation for teacher %s rolled back", plan.teacher_id)
        raise ReconciliationFailed(plan.teacher_id) from exc

    logger.info(
        "Teacher %s links updated: %d added, %d removed, %d kept",
        plan.teacher_id, len(added), len(plan.to_remove), len(plan.to_keep),
    )
    return ReconciliationResult(
        added=len(added),
        removed=len(plan.to_remove),
        kept=len(plan.to_keep),
        added_links=added,
    )


def update_assignments(
    store: LinkStore,
    teacher_id: str,
    desired_class_ids: Iterable[str],
) -> ReconciliationResult:
    """Fetch the teacher's current links, reconcile and apply."""
    with store.transaction() as conn:
        actual = store.links_for_teacher(conn, teacher_id)
    plan = reconcile(teacher_id, desired_class_ids, actual)
    if plan.is_noop:
        logger.debug("Teacher %s links already up to date", teacher_id)
    return apply(plan, store)


# ── Single-pair operations ──────────────────────────────────────────

def link(store: LinkStore, teacher_id: str, class_id: str) -> AssignmentLink:
    try:
        with store.transaction() as conn:
            if store.find(conn, teacher_id, class_id) is not None:
                raise DuplicateAssignment(teacher_id, class_id)
            return store.insert(conn, teacher_id, class_id)
    except IntegrityError as exc:
        # lost a race with a concurrent insert of the same pair
        raise DuplicateAssignment(teacher_id, class_id) from exc


def unlink(store: LinkStore, teacher_id: str, class_id: str) -> AssignmentLink:
    with store.transaction() as conn:
        existing = store.find(conn, teacher_id, class_id)
        if existing is None:
            raise AssignmentNotFound(teacher_id, class_id)
        store.delete(conn, existing.id)
        return existing


def teacher_links(store: LinkStore, teacher_id: str) -> List[AssignmentLink]:
    with store.transaction() as conn:
        return store.links_for_teacher(conn, teacher_id)


def all_links(store: LinkStore, class_id: Optional[str] = None) -> List[AssignmentLink]:
    """Every link in the store, or only those of one class."""
    with store.transaction() as conn:
        return store.list_links(conn, class_id)
