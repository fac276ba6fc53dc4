from app.models.user import User
from app.repositories.updateable import UpdateableRepository

class UserRepository(UpdateableRepository[User]):
    def __init__(self):
        super().__init__(User)
