import logging
from sqlalchemy.orm import Session


class BaseService:
    """Holds the request-scoped session and a per-service logger."""

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(type(self).__module__)
