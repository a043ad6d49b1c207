"""Certification record builder."""

from typing import Any

from ..config.models import Certification, RawEntity
from .base import BaseBuilder


class CertificationBuilder(BaseBuilder):
    record_type = Certification

    def _extra_fields(
        self, entity: RawEntity, fields: dict[str, Any]
    ) -> dict[str, Any]:
        return {}
