from sqlalchemy.ext.asyncio import AsyncSession
from app.models.todo import Todo
from app.repositories.todo_repo import TodoRepository
from app.schemas.todo import TodoCreate, TodoPatch, TodoUpdate

class TodoService:
    def __init__(self):
        self.repo = TodoRepository()

    async def create_todo(self, db: AsyncSession, todo_in: TodoCreate):
        todo = await self.repo.create(db, Todo(**todo_in.model_dump()))
        await self.repo.save_changes_async(db)
        return todo

    async def list_todos(self, db: AsyncSession):
        return await self.repo.list(db, order_by=[Todo.id])

    async def get_todo(self, db: AsyncSession, todo_id: int):
        return await self.repo.get(db, todo_id)

    async def replace_todo(self, db: AsyncSession, todo_id: int, todo_in: TodoUpdate):
        # SELECT せずに全列 UPDATE
        todo = Todo(id=todo_id, **todo_in.model_dump())
        return await self.repo.update_save_changes_async(db, todo)

    async def patch_todo(self, db: AsyncSession, todo_id: int, todo_in: TodoPatch):
        fields = todo_in.model_dump(exclude_unset=True)
        if not fields:
            return await self.repo.get(db, todo_id)
        todo = Todo(id=todo_id, **fields)
        await self.repo.update_include_save_changes_async(db, todo, fields.keys())
        # 未指定の列は expired のため読み直す
        await db.refresh(todo)
        return todo

    async def delete_todo(self, db: AsyncSession, todo_id: int) -> bool:
        deleted = await self.repo.delete(db, todo_id)
        await self.repo.save_changes_async(db)
        return deleted
