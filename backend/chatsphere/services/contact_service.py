"""
ChatSphere Backend: Contact Service
===================================

What:  Friend-request lifecycle, contact list, user search.
How:   Plain SQLAlchemy queries; users are joined explicitly (aliased twice
       for request rows) so no lazy loading happens in async code.
Who:   Called by the /api/contacts route handlers and by MessageService
       (are_contacts).

Request state machine:
    pending ──accept──▶ accepted   (+ Contact(A,B), Contact(B,A))
       └────reject──▶ rejected
    Only the recipient may accept or reject; a processed request is final.
"""

import logging
import uuid

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from chatsphere.exceptions import (
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from chatsphere.models.contact import (
    REQUEST_ACCEPTED,
    REQUEST_PENDING,
    REQUEST_REJECTED,
    Contact,
    ContactRequest,
)
from chatsphere.models.user import User
from chatsphere.schemas.contact import ContactRequestOut
from chatsphere.schemas.user import UserOut

logger = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 20

FromUser = aliased(User, name="from_user")
ToUser = aliased(User, name="to_user")


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so they match literally (escape char: backslash)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _request_out(request: ContactRequest, from_user: User, to_user: User) -> ContactRequestOut:
    return ContactRequestOut(
        id=request.id,
        from_user=UserOut.model_validate(from_user),
        to_user=UserOut.model_validate(to_user),
        status=request.status,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


class ContactService:
    """
    Responsibilities:
        - send_request(), accept_request(), reject_request()
        - list_pending(), list_sent(): pending requests with both users
        - list_contacts(), remove_contact()
        - search_users(): name/email substring search
    """

    # ── Helpers ──────────────────────────────────────────────────────────

    async def are_contacts(
        self, db: AsyncSession, user_id: uuid.UUID, other_id: uuid.UUID
    ) -> bool:
        result = await db.execute(
            select(Contact.id)
            .where(
                or_(
                    and_(Contact.user_id == user_id, Contact.contact_id == other_id),
                    and_(Contact.user_id == other_id, Contact.contact_id == user_id),
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _load_request(
        self, db: AsyncSession, request_id: uuid.UUID
    ) -> tuple[ContactRequest, User, User]:
        result = await db.execute(
            select(ContactRequest, FromUser, ToUser)
            .join(FromUser, FromUser.id == ContactRequest.from_user_id)
            .join(ToUser, ToUser.id == ContactRequest.to_user_id)
            .where(ContactRequest.id == request_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError(
                resource="Contact request",
                resource_id=str(request_id),
                message="Contact request not found",
            )
        return row[0], row[1], row[2]

    async def _list_requests(self, db: AsyncSession, *criteria) -> list[ContactRequestOut]:
        result = await db.execute(
            select(ContactRequest, FromUser, ToUser)
            .join(FromUser, FromUser.id == ContactRequest.from_user_id)
            .join(ToUser, ToUser.id == ContactRequest.to_user_id)
            .where(*criteria)
            .order_by(ContactRequest.created_at.desc())
        )
        return [_request_out(req, frm, to) for req, frm, to in result.all()]

    # ── Requests ─────────────────────────────────────────────────────────

    async def send_request(
        self, db: AsyncSession, user: User, target_id: uuid.UUID
    ) -> ContactRequestOut:
        """
        Create a pending request from `user` to `target_id`.

        Checks, in order:
            self → 400, unknown target → 404, already contacts → 400,
            pending request either way → 400
        """
        if target_id == user.id:
            raise ValidationError(message="Cannot send request to yourself", field="userId")

        target = await db.get(User, target_id)
        if target is None:
            raise NotFoundError(resource="User", resource_id=str(target_id))

        if await self.are_contacts(db, user.id, target_id):
            raise ValidationError(message="Already in your contacts")

        pending = await db.execute(
            select(ContactRequest.id)
            .where(
                ContactRequest.status == REQUEST_PENDING,
                or_(
                    and_(
                        ContactRequest.from_user_id == user.id,
                        ContactRequest.to_user_id == target_id,
                    ),
                    and_(
                        ContactRequest.from_user_id == target_id,
                        ContactRequest.to_user_id == user.id,
                    ),
                ),
            )
            .limit(1)
        )
        if pending.scalar_one_or_none() is not None:
            raise ValidationError(message="Contact request already pending")

        request = ContactRequest(
            from_user_id=user.id,
            to_user_id=target_id,
            status=REQUEST_PENDING,
        )
        db.add(request)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create contact request: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "send_request"})

        logger.info("Contact request %s: %s → %s", request.id, user.id, target_id)
        return _request_out(request, user, target)

    async def list_pending(self, db: AsyncSession, user: User) -> list[ContactRequestOut]:
        """Pending requests addressed to the user, newest first."""
        return await self._list_requests(
            db,
            ContactRequest.to_user_id == user.id,
            ContactRequest.status == REQUEST_PENDING,
        )

    async def list_sent(self, db: AsyncSession, user: User) -> list[ContactRequestOut]:
        """Pending requests the user has sent, newest first."""
        return await self._list_requests(
            db,
            ContactRequest.from_user_id == user.id,
            ContactRequest.status == REQUEST_PENDING,
        )

    async def accept_request(
        self, db: AsyncSession, user: User, request_id: uuid.UUID
    ) -> ContactRequestOut:
        request, from_user, to_user = await self._load_request(db, request_id)

        if request.to_user_id != user.id:
            raise PermissionDeniedError("Not authorized to accept this request")
        if request.status != REQUEST_PENDING:
            raise ValidationError(message="Request already processed")

        request.status = REQUEST_ACCEPTED

        for owner_id, other_id in (
            (request.from_user_id, request.to_user_id),
            (request.to_user_id, request.from_user_id),
        ):
            existing = await db.execute(
                select(Contact.id).where(
                    Contact.user_id == owner_id, Contact.contact_id == other_id
                )
            )
            if existing.scalar_one_or_none() is None:
                db.add(Contact(user_id=owner_id, contact_id=other_id))

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to accept request %s: %s", request_id, str(e), exc_info=True)
            raise DatabaseError(context={"operation": "accept_request"})

        logger.info("Contact request %s accepted", request_id)
        return _request_out(request, from_user, to_user)

    async def reject_request(
        self, db: AsyncSession, user: User, request_id: uuid.UUID
    ) -> None:
        request, _, _ = await self._load_request(db, request_id)

        if request.to_user_id != user.id:
            raise PermissionDeniedError("Not authorized to reject this request")
        if request.status != REQUEST_PENDING:
            raise ValidationError(message="Request already processed")

        request.status = REQUEST_REJECTED
        await db.flush()
        logger.info("Contact request %s rejected", request_id)

    # ── Contacts ─────────────────────────────────────────────────────────

    async def list_contacts(self, db: AsyncSession, user: User) -> list[UserOut]:
        """The user's contacts, most recently added first."""
        result = await db.execute(
            select(User)
            .join(Contact, Contact.contact_id == User.id)
            .where(Contact.user_id == user.id)
            .order_by(Contact.created_at.desc())
        )
        return [UserOut.model_validate(u) for u in result.scalars().all()]

    async def remove_contact(
        self, db: AsyncSession, user: User, contact_id: uuid.UUID
    ) -> None:
        """Delete both directions; removing a non-contact is a no-op."""
        result = await db.execute(
            delete(Contact).where(
                or_(
                    and_(Contact.user_id == user.id, Contact.contact_id == contact_id),
                    and_(Contact.user_id == contact_id, Contact.contact_id == user.id),
                )
            )
        )
        logger.info(
            "Contact removed: %s ↔ %s (%d rows)", user.id, contact_id, result.rowcount
        )

    async def search_users(self, db: AsyncSession, user: User, query: str | None) -> list[UserOut]:
        term = (query or "").strip()
        if not term:
            raise ValidationError(message="Search query is required", field="query")

        pattern = f"%{_escape_like(term.lower())}%"
        result = await db.execute(
            select(User)
            .where(
                User.id != user.id,
                or_(
                    func.lower(User.name).like(pattern, escape="\\"),
                    func.lower(User.email).like(pattern, escape="\\"),
                ),
            )
            .order_by(User.name)
            .limit(SEARCH_RESULT_LIMIT)
        )
        return [UserOut.model_validate(u) for u in result.scalars().all()]


contact_service = ContactService()
