from pydantic import BaseModel, ConfigDict, Field as PydanticField


class LookupOut(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class PriorityOut(LookupOut):
    sort_order: int = PydanticField(alias="sortOrder")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
