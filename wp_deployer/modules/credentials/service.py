import uuid
import logging
from typing import Callable, List, Optional, Tuple

from wp_deployer.core.exceptions import ConnectorError, ValidationError
from wp_deployer.database.file_store import FileStore, utc_now
from wp_deployer.modules.credentials.schemas import Credential, CredentialSummary
from wp_deployer.modules.hosting.connector import HostingConnector, clean_host
from wp_deployer.modules.hosting.schemas import CredentialCheck, FtpCheck, HostingAccount

logger = logging.getLogger(__name__)


class CredentialService:
    def __init__(self, store: FileStore, connector: HostingConnector):
        self.store = store
        self.connector = connector

    def validate(
        self,
        host: str,
        username: str,
        password: str,
        port: int = 2083,
        log_callback: Optional[Callable[[str], None]] = None,
    ) -> Tuple[CredentialCheck, Optional[FtpCheck]]:
        """Validate against cPanel; when valid, also confirm FTP access can be derived."""
        check = self.connector.validate(host, username, password, port, log_callback=log_callback)
        if not check.valid:
            return check, None
        account = HostingAccount(host=check.host, username=username, password=password, port=check.port)
        try:
            ftp = self.connector.get_ftp_credentials(account, log_callback=log_callback)
        except ConnectorError as e:
            return check, FtpCheck(success=False, message="FTP credentials could not be derived", error=e.message)
        return check, FtpCheck(success=True, message="FTP credentials available", host=ftp.host, user=ftp.user,
                               port=ftp.port)

    def save(self, name: str, host: str, username: str, password: str, port: int = 2083) -> Credential:
        """Persist a credential only after it passes validation."""
        check = self.connector.validate(host, username, password, port)
        if not check.valid:
            raise ValidationError("Invalid credentials", details=check.message)
        credential = Credential(
            id=str(uuid.uuid4()),
            name=name.strip(),
            host=check.host,
            username=username,
            password=password,
            port=check.port,
            validated_at=utc_now(),
        )
        self.store.insert(credential.id, credential.to_record())
        logger.info(f"Saved credential {credential.id} ({credential.name}) for {credential.host}")
        return credential

    def get(self, credential_id: str) -> Credential:
        return Credential.model_validate(self.store.get(credential_id))

    def list_credentials(self) -> List[CredentialSummary]:
        return [CredentialSummary.model_validate(record) for record in self.store.list_all()]

    def delete(self, credential_id: str) -> None:
        self.store.delete(credential_id)
        logger.info(f"Deleted credential {credential_id}")

    def touch_last_used(self, credential_id: str) -> None:
        credential = self.get(credential_id)
        credential.last_used = utc_now()
        self.store.update(credential_id, credential.to_record())

    @staticmethod
    def account(credential: Credential) -> HostingAccount:
        return HostingAccount(
            host=clean_host(credential.host),
            username=credential.username,
            password=credential.password,
            port=credential.port,
        )
