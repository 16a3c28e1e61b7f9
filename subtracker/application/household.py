"""
Household member use cases.

Members are referenced by subscriptions (payer, owner, manager, users);
deleting a member leaves those references dangling and the read layer
renders them as "Unknown".
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from subtracker.domain.subscription import HouseholdMember, HOUSEHOLD_ROLES, AVATAR_COLORS
from subtracker.infrastructure.db.live_query import commit
from subtracker.infrastructure.db.repository import HouseholdMemberRepository

logger = logging.getLogger(__name__)


class HouseholdValidationError(ValueError):
    pass


class MemberNotFoundError(HouseholdValidationError):
    pass


def _validate(member: HouseholdMember) -> None:
    if not member.name or not member.name.strip():
        raise HouseholdValidationError("Name cannot be empty")
    if member.role not in HOUSEHOLD_ROLES:
        raise HouseholdValidationError(f"Unknown role: {member.role}")


class CreateMemberUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, name: str, role: str = "member", avatar_color: str | None = None,
                avatar_url: str | None = None) -> str:
        repo = HouseholdMemberRepository(self.db)
        if avatar_color is None:
            # Cycle the palette so new members are distinguishable
            avatar_color = AVATAR_COLORS[repo.count() % len(AVATAR_COLORS)]
        member = HouseholdMember(
            id=str(uuid.uuid4()),
            name=(name or "").strip(),
            role=role,
            avatar_color=avatar_color,
            avatar_url=avatar_url,
            created_at=datetime.now(timezone.utc),
        )
        _validate(member)
        repo.add(member)
        commit(self.db)
        logger.info("Household member added: id=%s name=%s", member.id, member.name)
        return member.id


class UpdateMemberUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, member_id: str, **changes) -> HouseholdMember:
        repo = HouseholdMemberRepository(self.db)
        current = repo.get(member_id)
        if current is None:
            raise MemberNotFoundError("Member not found")
        changes.pop("id", None)
        changes.pop("created_at", None)
        if changes.get("name") is not None:
            changes["name"] = changes["name"].strip()
        _validate(HouseholdMember(**{**current.__dict__, **changes}))
        result = repo.update(member_id, **changes)
        commit(self.db)
        return result


class DeleteMemberUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, member_id: str) -> None:
        if not HouseholdMemberRepository(self.db).delete(member_id):
            raise MemberNotFoundError("Member not found")
        commit(self.db)
