from dataclasses import dataclass
from typing import Optional

from wp_deployer.core.schemas import CamelModel


@dataclass(frozen=True)
class HostingAccount:
    """Control panel login for one hosting account."""
    host: str
    username: str
    password: str
    port: int = 2083


@dataclass(frozen=True)
class FtpCredentials:
    host: str
    user: str
    password: str
    port: int = 21


class DbInstructions(CamelModel):
    cpanel_url: str
    database_name: str
    database_user: str
    database_password: str
    domain: str


class DatabaseProvisioning(CamelModel):
    db_name: str
    db_user: str
    db_pass: str
    manual: bool = False
    instructions: Optional[DbInstructions] = None


class CredentialCheck(CamelModel):
    valid: bool
    message: str
    host: str
    username: str
    port: int
    endpoint: Optional[str] = None
    profile: Optional[str] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None


class FtpCheck(CamelModel):
    success: bool
    message: str
    host: Optional[str] = None
    user: Optional[str] = None
    port: Optional[int] = None
    error: Optional[str] = None
