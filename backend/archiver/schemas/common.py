from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Integer keys for the SQL adapter, push-key strings for the tree adapter
Key = int | str


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(BaseModel):
    message: str
