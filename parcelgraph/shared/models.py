from pydantic import BaseModel, ConfigDict


class ParcelBaseModel(BaseModel):
    model_config = ConfigDict(
        protected_namespaces=(),
        arbitrary_types_allowed=True,
    )


class LeafBaseModel(BaseModel):
    """Base for records decoded from gateway payloads.

    Unknown keys are ignored so upstream schema additions do not turn into
    shape mismatches.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)
