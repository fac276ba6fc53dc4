from sqlalchemy.ext.asyncio import AsyncSession
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import UserCreate, UserPatch, UserUpdate

class UserService:
    def __init__(self):
        self.repo = UserRepository()

    async def create_user(self, db: AsyncSession, user_in: UserCreate):
        user = await self.repo.create(db, User(**user_in.model_dump()))
        await self.repo.save_changes_async(db)
        return user

    async def list_users(self, db: AsyncSession):
        return await self.repo.list(db, order_by=[User.id])

    async def get_user(self, db: AsyncSession, user_id: int):
        return await self.repo.get(db, user_id)

    async def replace_user(self, db: AsyncSession, user_id: int, user_in: UserUpdate):
        user = User(id=user_id, **user_in.model_dump())
        return await self.repo.update_save_changes_async(db, user)

    async def patch_user(self, db: AsyncSession, user_id: int, user_in: UserPatch):
        fields = user_in.model_dump(exclude_unset=True)
        if not fields:
            return await self.repo.get(db, user_id)
        user = User(id=user_id, **fields)
        await self.repo.update_include_save_changes_async(db, user, fields.keys())
        await db.refresh(user)
        return user

    async def delete_user(self, db: AsyncSession, user_id: int) -> bool:
        deleted = await self.repo.delete(db, user_id)
        await self.repo.save_changes_async(db)
        return deleted
