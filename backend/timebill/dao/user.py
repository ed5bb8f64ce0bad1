"""
User and Matter DAOs.

WHAT: Read access to the collaborator tables the engine references.

WHY: Staff and case records are owned by other services; billing only
looks them up by id (role and fallback rate, matter name and client).
"""

from sqlalchemy.ext.asyncio import AsyncSession

from timebill.dao.base import BaseDAO
from timebill.models.matter import Matter
from timebill.models.user import User


class UserDAO(BaseDAO[User]):
    def __init__(self, session: AsyncSession):
        super().__init__(User, session)


class MatterDAO(BaseDAO[Matter]):
    def __init__(self, session: AsyncSession):
        super().__init__(Matter, session)
