from typing import List, Optional

from pydantic import Field

from wp_deployer.core.schemas import CamelModel
from wp_deployer.modules.hosting.schemas import CredentialCheck, FtpCheck


class Credential(CamelModel):
    id: str
    name: str
    host: str
    username: str
    password: str
    port: int = 2083
    validated_at: str
    last_used: Optional[str] = None

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CredentialSummary(CamelModel):
    """Listing projection; the password never leaves the store."""
    id: str
    name: str
    host: str
    username: str
    port: int
    validated_at: Optional[str] = None
    last_used: Optional[str] = None


class ValidateCredentialsRequest(CamelModel):
    host: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    port: int = 2083


class SaveCredentialsRequest(ValidateCredentialsRequest):
    name: str = Field(..., min_length=1)


class CredentialValidationResponse(CamelModel):
    success: bool
    message: str
    cpanel: CredentialCheck
    ftp: Optional[FtpCheck] = None


class SaveCredentialsResponse(CamelModel):
    success: bool = True
    message: str
    credential_id: str
    name: str


class CredentialListResponse(CamelModel):
    credentials: List[CredentialSummary]


class CredentialDeleteResponse(CamelModel):
    message: str
    id: str
