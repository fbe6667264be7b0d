from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

class ProviderClient(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: str = Field(..., alias="clientId")

class OAuthClientConfig(BaseModel):
    github: Optional[ProviderClient] = None
    gitlab: Optional[ProviderClient] = None
