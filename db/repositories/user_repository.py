from db.models.user import User
from db.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository):
    def create_user(self, user: User):
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_user_by_id(self, user_id: int):
        return self.db.query(User).filter(User.id == user_id).first()

    def count(self, is_active: bool | None = None) -> int:
        query = self.db.query(User)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        return query.count()
