# backend/app/crud/crud_shop.py
from pydantic import BaseModel

from app.crud.base import CRUDBase
from app.db.models.shop import Shop


class CRUDShop(CRUDBase[Shop, BaseModel, BaseModel]):
    pass


shop = CRUDShop(Shop)
