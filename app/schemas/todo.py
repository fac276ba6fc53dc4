from pydantic import BaseModel, ConfigDict
from typing import Optional

class TodoBase(BaseModel):
    title: str

class TodoCreate(TodoBase):
    owner_id: int

class TodoUpdate(TodoBase):
    completed: bool = False
    owner_id: int

class TodoPatch(BaseModel):
    title: Optional[str] = None
    completed: Optional[bool] = None
    owner_id: Optional[int] = None

class TodoOut(TodoBase):
    id: int
    completed: bool
    owner_id: int
    model_config = ConfigDict(from_attributes=True)
