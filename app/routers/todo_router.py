import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.schemas.todo import TodoCreate, TodoOut, TodoPatch, TodoUpdate
from app.services.todo_service import TodoService
from app.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()
service = TodoService()

@router.post("/", response_model=TodoOut, status_code=201)
async def create_todo(todo_in: TodoCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await service.create_todo(db, todo_in)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Todo violates a constraint")

@router.get("/", response_model=list[TodoOut])
async def list_todos(db: AsyncSession = Depends(get_db)):
    return await service.list_todos(db)

@router.get("/{todo_id}", response_model=TodoOut)
async def get_todo(todo_id: int, db: AsyncSession = Depends(get_db)):
    todo = await service.get_todo(db, todo_id)
    if not todo:
        raise HTTPException(status_code=404, detail="Todo not found")
    return todo

@router.put("/{todo_id}", response_model=TodoOut)
async def replace_todo(todo_id: int, todo_in: TodoUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await service.replace_todo(db, todo_id, todo_in)
    except StaleDataError:
        await db.rollback()
        logger.info("replace_todo: todo %s not found", todo_id)
        raise HTTPException(status_code=404, detail="Todo not found")
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Todo violates a constraint")

@router.patch("/{todo_id}", response_model=TodoOut)
async def patch_todo(todo_id: int, todo_in: TodoPatch, db: AsyncSession = Depends(get_db)):
    try:
        todo = await service.patch_todo(db, todo_id, todo_in)
    except StaleDataError:
        await db.rollback()
        logger.info("patch_todo: todo %s not found", todo_id)
        raise HTTPException(status_code=404, detail="Todo not found")
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Todo violates a constraint")
    if not todo:
        raise HTTPException(status_code=404, detail="Todo not found")
    return todo

@router.delete("/{todo_id}", status_code=204)
async def delete_todo(todo_id: int, db: AsyncSession = Depends(get_db)):
    try:
        deleted = await service.delete_todo(db, todo_id)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Todo is still referenced")
    if not deleted:
        raise HTTPException(status_code=404, detail="Todo not found")
