from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy import inspect

from app.database.session import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base class for CRUD operations.

    Methods flush but never commit; the caller owns the transaction.
    """
    def __init__(self, model: Type[ModelType]):
        self.model = model

    @property
    def _primary_key(self):
        return getattr(self.model, inspect(self.model).primary_key[0].name)

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """
        Get an object by ID
        """
        return db.query(self.model).filter(self._primary_key == id).first()

    def get_multi(self, db: Session, *, skip: int = 0, limit: int = 100, filters: Dict = None) -> List[ModelType]:
        """
        Get multiple objects with optional equality filters
        """
        query = db.query(self.model)

        if filters:
            for attr, value in filters.items():
                if hasattr(self.model, attr):
                    if isinstance(value, list):
                        query = query.filter(getattr(self.model, attr).in_(value))
                    else:
                        query = query.filter(getattr(self.model, attr) == value)

        return query.order_by(self._primary_key).offset(skip).limit(limit).all()

    def update(self, db: Session, *, db_obj: ModelType, obj_in: Union[UpdateSchemaType, Dict[str, Any]]) -> ModelType:
        """
        Partial update: only supplied fields change
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        db.add(db_obj)
        db.flush()
        return db_obj

    def remove(self, db: Session, *, db_obj: ModelType) -> ModelType:
        db.delete(db_obj)
        db.flush()
        return db_obj
