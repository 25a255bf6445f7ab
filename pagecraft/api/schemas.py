"""
pagecraft.api.schemas — Shared request-body base
==================================================

Bodies arrive camelCase (``templateId``, ``isPublic``, ``htmlCode``) and
are read as snake_case attributes.  Both spellings are accepted.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
