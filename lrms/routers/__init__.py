"""API routers package"""
from lrms.routers.land_records import router as land_records_router

__all__ = [
    "land_records_router",
]
