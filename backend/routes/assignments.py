"""
Assignment routes — teacher-to-class links.
"""

import os
from dataclasses import asdict
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from academics.errors import AssignmentNotFound, DuplicateAssignment, ReconciliationFailed
from academics.links import all_links, link, teacher_links, unlink, update_assignments
from academics.store import LinkStore

router = APIRouter()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./academics.db")


@lru_cache(maxsize=1)
def get_store() -> LinkStore:
    return LinkStore.from_url(DATABASE_URL)


def _pair(payload: dict):
    teacher_id = str(payload.get("teacher_id") or "").strip()
    class_id = str(payload.get("class_id") or "").strip()
    if not teacher_id or not class_id:
        raise HTTPException(400, "Provide 'teacher_id' and 'class_id'.")
    return teacher_id, class_id


@router.get("")
def list_all_links(class_id: Optional[str] = None, store: LinkStore = Depends(get_store)):
    """All teacher-to-class links, optionally only those of one class."""
    return {"links": [asdict(item) for item in all_links(store, class_id)]}


@router.get("/{teacher_id}")
def list_links(teacher_id: str, store: LinkStore = Depends(get_store)):
    """Classes currently linked to a teacher."""
    return {"links": [asdict(item) for item in teacher_links(store, teacher_id)]}


@router.put("/{teacher_id}")
def replace_links(teacher_id: str, payload: dict, store: LinkStore = Depends(get_store)):
    """
    Make the teacher's links match 'class_ids' exactly: missing classes are
    linked, classes not listed are unlinked, the rest are kept.
    """
    class_ids = payload.get("class_ids")
    if not isinstance(class_ids, list):
        raise HTTPException(400, "Provide 'class_ids' as a list (it may be empty).")
    desired = {str(c).strip() for c in class_ids if str(c).strip()}

    try:
        result = update_assignments(store, teacher_id, desired)
    except ReconciliationFailed as exc:
        raise HTTPException(500, str(exc))

    return {
        "message": "Links updated",
        "added": result.added,
        "removed": result.removed,
        "kept": result.kept,
        "total": len(desired),
        "added_classes": [item.class_id for item in result.added_links],
    }


@router.post("/link", status_code=201)
def create_link(payload: dict, store: LinkStore = Depends(get_store)):
    teacher_id, class_id = _pair(payload)
    try:
        created = link(store, teacher_id, class_id)
    except DuplicateAssignment as exc:
        raise HTTPException(409, str(exc))
    return {"message": "Class linked", "link": asdict(created)}


@router.delete("/link")
def remove_link(payload: dict, store: LinkStore = Depends(get_store)):
    teacher_id, class_id = _pair(payload)
    try:
        unlink(store, teacher_id, class_id)
    except AssignmentNotFound as exc:
        raise HTTPException(404, str(exc))
    return {"message": "Class unlinked"}
