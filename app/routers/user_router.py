import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.schemas.user import UserCreate, UserOut, UserPatch, UserUpdate
from app.services.user_service import UserService
from app.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()
service = UserService()

@router.post("/", response_model=UserOut, status_code=201)
async def create_user(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await service.create_user(db, user_in)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="User violates a constraint")

@router.get("/", response_model=list[UserOut])
async def list_users(db: AsyncSession = Depends(get_db)):
    return await service.list_users(db)

@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await service.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

@router.put("/{user_id}", response_model=UserOut)
async def replace_user(user_id: int, user_in: UserUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await service.replace_user(db, user_id, user_in)
    except StaleDataError:
        await db.rollback()
        logger.info("replace_user: user %s not found", user_id)
        raise HTTPException(status_code=404, detail="User not found")
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="User violates a constraint")

@router.patch("/{user_id}", response_model=UserOut)
async def patch_user(user_id: int, user_in: UserPatch, db: AsyncSession = Depends(get_db)):
    try:
        user = await service.patch_user(db, user_id, user_in)
    except StaleDataError:
        await db.rollback()
        logger.info("patch_user: user %s not found", user_id)
        raise HTTPException(status_code=404, detail="User not found")
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="User violates a constraint")
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: int, db: AsyncSession = Depends(get_db)):
    try:
        deleted = await service.delete_user(db, user_id)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="User is still referenced")
    if not deleted:
        raise HTTPException(status_code=404, detail="User not found")
