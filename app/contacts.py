"""Contact intake routes.

``POST /contact`` is public: it stores the request and then notifies the
admin and the submitter. The stored request is the success boundary, so
the response is a success whatever happens to the notifications. The
``/contacts`` routes let admins triage stored requests.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from . import schemas, crud
from .auth import SessionSubject, get_current_admin
from .database import get_db
from .errors import NotFound
from .notifications import ContactDetails, notify_contact_request

logger = logging.getLogger(__name__)

public_router = APIRouter(prefix="/contact", tags=["contact"])
router = APIRouter(prefix="/contacts", tags=["contacts"])


@public_router.post("", response_model=schemas.ContactSubmitted, status_code=201)
async def submit_contact(
    contact_in: schemas.ContactCreate,
    db: Session = Depends(get_db),
):
    """
    Store a contact request and notify the admin and the submitter.

    Args:
        contact_in (ContactCreate): Validated form data.
        db (Session): Database session.

    Returns:
        ContactSubmitted: Identifier of the stored request and the
        notification outcome.
    """
    contact = crud.create_contact_request(db, contact_in)
    outcome = await notify_contact_request(ContactDetails.from_model(contact))
    logger.info(
        "Contact request %s stored, notifications %s", contact.id, outcome.status
    )
    return schemas.ContactSubmitted(
        message="Your message has been sent"
        if outcome.status == "sent"
        else "Your message has been saved",
        id=contact.id,
        notification=outcome,
    )


@router.get("", response_model=List[schemas.ContactOut])
def list_contacts(
    read: bool | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    """
    Retrieve contact requests, newest first.

    Args:
        read (bool | None): Optional read-state filter.
        skip (int): Number of records to skip.
        limit (int): Maximum number of records to return.
        db (Session): Database session.
        current_admin (SessionSubject): Authenticated admin.

    Returns:
        list[ContactOut]: List of contact requests.
    """
    return crud.list_contact_requests(
        db, crud.ContactFilter(read=read), skip=skip, limit=limit
    )


@router.get("/{contact_id}", response_model=schemas.ContactOut)
def get_contact(
    contact_id: str,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    contact = crud.get_contact_request(db, contact_id)
    if contact is None:
        raise NotFound("Contact request not found")
    return contact


@router.put("/{contact_id}", response_model=schemas.ContactOut)
def mark_contact(
    contact_id: str,
    changes: schemas.ContactReadUpdate,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    """
    Mark a contact request as read or unread.

    Raises:
        NotFound: If the request does not exist.
    """
    return crud.mark_contact_request(db, contact_id, changes.read)


@router.delete("/{contact_id}", response_model=schemas.Message)
def remove_contact(
    contact_id: str,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    """
    Delete a contact request.

    Raises:
        NotFound: If the request does not exist.
    """
    crud.delete_contact_request(db, contact_id)
    return schemas.Message(message="Contact request deleted")
