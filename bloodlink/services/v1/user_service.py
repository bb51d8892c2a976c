# bloodlink/services/v1/user_service.py
from datetime import date
from math import ceil
from typing import Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.db.models import User, UserRole
from bloodlink.db.schemas import UserCreate
from bloodlink.scheduling import (
    DEFAULT_POLICY,
    COMPATIBLE_DONORS,
    BloodType,
    EligibilityReport,
    NotFound,
    SchedulingPolicy,
    compatibility_score,
    evaluate_eligibility,
    last_eligible_donation_date,
)
from common import AppError, DatabaseError, get_app_logger

logger = get_app_logger(__name__)


class UserAlreadyExists(AppError):
    status_code = 409
    code = "USER_ALREADY_EXISTS"


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: str, for_update: bool = False) -> Optional[User]:
        query = (
            select(User)
            .where(User.user_id == user_id)
            .execution_options(logging_token="UserService.get_user_by_id")
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("user_lookup_failed", user_id=user_id, error=str(e))
            raise DatabaseError("Failed to load user") from e
        return result.scalar_one_or_none()

    async def _get_with_role(
        self, user_id: str, role: UserRole, label: str, for_update: bool = False
    ) -> User:
        user = await self.get_user_by_id(user_id, for_update=for_update)
        if user is None or user.role != role or not user.is_active:
            raise NotFound(label, user_id)
        return user

    async def get_blood_bank(self, blood_bank_id: str) -> User:
        """
        Raises:
            NotFound: Unless the id is an active blood-bank account
        """
        return await self._get_with_role(blood_bank_id, UserRole.BLOOD_BANK, "Blood bank")

    async def get_donor(self, donor_id: str, for_update: bool = False) -> User:
        """
        Raises:
            NotFound: Unless the id is an active donor account
        """
        return await self._get_with_role(donor_id, UserRole.DONOR, "Donor", for_update)

    async def get_eligibility(
        self,
        donor_id: str,
        today: date,
        policy: SchedulingPolicy = DEFAULT_POLICY,
    ) -> tuple[User, EligibilityReport]:
        donor = await self.get_donor(donor_id)
        report = evaluate_eligibility(
            donor.eligible_to_donate, donor.last_donation_date, today, policy
        )
        return donor, report

    async def _scalars(self, query, token: str) -> list:
        try:
            result = await self.db.execute(query.execution_options(logging_token=token))
        except SQLAlchemyError as e:
            logger.error("user_query_failed", query=token, error=str(e))
            raise DatabaseError(f"Failed to read users ({token})") from e
        return list(result.scalars().all())

    async def list_blood_banks(
        self, page: int = 1, limit: int = 10
    ) -> tuple[list[User], int, int]:
        """
        Returns:
            (active blood banks on this page, total, total pages), by name
        """
        active_banks = (User.role == UserRole.BLOOD_BANK, User.is_active.is_(True))
        count_query = select(func.count()).select_from(User).where(*active_banks)
        total = (await self._scalars(count_query, "UserService.count_blood_banks"))[0]

        query = (
            select(User)
            .where(*active_banks)
            .order_by(func.coalesce(User.organization_name, User.name), User.user_id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = await self._scalars(query, "UserService.list_blood_banks")
        return items, total, ceil(total / limit) if total else 0

    async def search_eligible_donors(
        self,
        blood_type: BloodType,
        today: date,
        policy: SchedulingPolicy = DEFAULT_POLICY,
        limit: int = 20,
    ) -> list[tuple[User, int]]:
        """
        Active donors who could give blood to a ``blood_type`` recipient today.

        Returns:
            (donor, compatibility score) pairs, best match first, then the
            donors who have waited longest since their last donation
        """
        compatible = COMPATIBLE_DONORS[blood_type]
        cutoff = last_eligible_donation_date(today, policy)
        score = case(
            {
                donor_type.value: compatibility_score(blood_type, donor_type)
                for donor_type in compatible
            },
            value=User.blood_type,
            else_=0,
        )
        query = (
            select(User)
            .where(
                User.role == UserRole.DONOR,
                User.is_active.is_(True),
                User.eligible_to_donate.is_(True),
                User.blood_type.in_(sorted(compatible)),
                or_(User.last_donation_date.is_(None), User.last_donation_date <= cutoff),
            )
            .order_by(
                score.desc(),
                User.last_donation_date.is_(None).desc(),
                User.last_donation_date,
                User.name,
            )
            .limit(limit)
        )
        donors = await self._scalars(query, "UserService.search_eligible_donors")
        logger.debug(
            "eligible_donor_search",
            blood_type=blood_type.value,
            cutoff=cutoff.isoformat(),
            matches=len(donors),
        )
        return [(donor, compatibility_score(blood_type, donor.blood_type)) for donor in donors]

    async def create_user(self, data: UserCreate) -> User:
        """
        Raises:
            UserAlreadyExists: If the email is already registered
        """
        user = User(**data.model_dump())
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise UserAlreadyExists(f"Email already registered: {data.email}") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("user_create_failed", error=str(e))
            raise DatabaseError("Failed to create user") from e

        logger.info("user_created", user_id=user.user_id, role=user.role.value)
        return user


__all__ = ["UserService", "UserAlreadyExists"]
