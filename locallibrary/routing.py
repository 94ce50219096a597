"""
Catalog routers.

Record ids in paths use the "id" convertor instead of "int": only values a
SQLite INTEGER column can hold match, so an oversized id falls through to the
404 page like any other unknown route.
"""

from fastapi import APIRouter
from starlette.convertors import Convertor, register_url_convertor


class RecordIdConvertor(Convertor):
    # 18 digits always fit below 2**63
    regex = "[0-9]{1,18}"

    def convert(self, value: str) -> int:
        return int(value)

    def to_string(self, value: int) -> str:
        return str(value)


register_url_convertor("id", RecordIdConvertor())


def catalog_router(tag: str) -> APIRouter:
    """Router mounted under /catalog for one kind of record."""
    return APIRouter(prefix="/catalog", tags=[tag])
