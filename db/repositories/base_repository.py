from sqlalchemy.orm import Session


class BaseRepository:
    def __init__(self, db: Session):
        self.db = db

    def rollback(self) -> None:
        """Discard a failed unit of work so the session can be reused."""
        self.db.rollback()
