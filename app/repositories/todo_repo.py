from app.models.todo import Todo
from app.repositories.updateable import UpdateableRepository

class TodoRepository(UpdateableRepository[Todo]):
    def __init__(self):
        super().__init__(Todo)
