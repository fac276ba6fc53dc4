from pydantic import BaseModel, ConfigDict
from typing import Optional

class UserBase(BaseModel):
    name: str
    email: str

class UserCreate(UserBase):
    pass

class UserUpdate(UserBase):
    pass

class UserPatch(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None

class UserOut(UserBase):
    id: int
    model_config = ConfigDict(from_attributes=True)
