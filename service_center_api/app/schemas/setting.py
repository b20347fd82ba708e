"""
Pydantic models for runtime settings.
"""

from typing import Any, Literal

from pydantic import BaseModel

SettingType = Literal["string", "int", "float", "bool"]


class SettingWrite(BaseModel):
    value: Any
    type: SettingType = "string"


class SettingRead(BaseModel):
    key: str
    value: Any
    type: SettingType
