"""Language server process models for the quota monitor."""

from pydantic import BaseModel, ConfigDict, Field


class ProcessInfo(BaseModel):
    """A located language server process."""

    model_config = ConfigDict(frozen=True)

    process_id: str = Field(..., pattern=r"^\d+$", description="Numeric process identifier")
    auth_token: str = Field(default="", description="Token taken from the launch arguments")
