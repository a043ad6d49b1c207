"""Product record builder."""

from typing import Any

from ..config.models import Product, RawEntity
from .base import BaseBuilder


class ProductBuilder(BaseBuilder):
    record_type = Product

    def _extra_fields(
        self, entity: RawEntity, fields: dict[str, Any]
    ) -> dict[str, Any]:
        return {}
