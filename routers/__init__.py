# routers/__init__.py
from .admin import router as admin_router
from .customers import router as customers_router
from .loyalty import router as loyalty_router
from .orders import router as orders_router
from .promotions import router as promotions_router

__all__ = [
     "admin_router",
     "customers_router",
     "loyalty_router",
     "orders_router",
     "promotions_router",
]
