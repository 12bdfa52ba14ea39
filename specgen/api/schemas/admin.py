"""
Administrative schemas for categories, parameters and settings.
"""

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class ValueOptionModel(BaseModel):
    label: str
    id: Optional[str] = None


class ToggleValuesModel(BaseModel):
    on: str
    off: str


class ParameterConfigModel(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None


ParameterValuesModel = Union[List[ValueOptionModel], ToggleValuesModel]


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    visibility: Literal["Show", "Hide"] = "Show"
    year: Optional[int] = None
    sort_order: int = 0
    id: Optional[str] = Field(
        default=None,
        description="Slug id. Derived from the name when omitted."
    )


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    visibility: Optional[Literal["Show", "Hide"]] = None
    year: Optional[int] = None
    sort_order: Optional[int] = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: str
    visibility: str
    year: Optional[int] = None
    sort_order: int
    created_at: str
    updated_at: str


class ParameterCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: Literal["select", "text", "number", "boolean", "range"]
    category_id: str
    description: str = ""
    visibility: Literal["Basic", "Advanced", "Hide"] = "Basic"
    required: bool = False
    sort_order: int = 0
    parameter_values: Optional[ParameterValuesModel] = None
    parameter_config: Optional[ParameterConfigModel] = None
    id: Optional[str] = None


class ParameterUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[Literal["select", "text", "number", "boolean", "range"]] = None
    category_id: Optional[str] = None
    description: Optional[str] = None
    visibility: Optional[Literal["Basic", "Advanced", "Hide"]] = None
    required: Optional[bool] = None
    sort_order: Optional[int] = None
    parameter_values: Optional[ParameterValuesModel] = None
    parameter_config: Optional[ParameterConfigModel] = None


class ParameterResponse(BaseModel):
    id: str
    name: str
    description: str
    type: str
    visibility: str
    category_id: str
    required: bool
    sort_order: int
    parameter_values: Optional[ParameterValuesModel] = None
    parameter_config: Optional[ParameterConfigModel] = None
    created_at: str
    updated_at: str


class SettingUpdate(BaseModel):
    value: Any
    data_type: Literal["string", "number", "boolean", "json"] = "string"
    description: Optional[str] = None


class SettingResponse(BaseModel):
    key: str
    value: Any = Field(description="Decoded value")
    data_type: str
    description: str
    updated_at: str
