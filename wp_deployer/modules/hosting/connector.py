import re
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import httpx

from wp_deployer.config import settings
from wp_deployer.core.exceptions import ConnectorError, ValidationError
from wp_deployer.modules.hosting.ftp_transfer import FileTransfer, FtpTransfer
from wp_deployer.modules.hosting.passwords import generate_strong_password, random_suffix
from wp_deployer.modules.hosting.profiles import (
    GENERIC_HEADERS,
    INVALID,
    PROVISIONING_PROFILES,
    SUCCEEDED,
    VALIDATION_PROFILES,
    run_profiles,
)
from wp_deployer.modules.hosting.schemas import (
    CredentialCheck,
    DatabaseProvisioning,
    DbInstructions,
    FtpCredentials,
    HostingAccount,
)

logger = logging.getLogger(__name__)

LogCallback = Optional[Callable[[str], None]]
HOST_PATTERN = re.compile(r"^[A-Za-z0-9.-]+$")


def clean_host(host: str) -> str:
    return re.sub(r"^https?://", "", (host or "").strip()).rstrip("/")


def _noop(message: str) -> None:
    logger.debug(message)


class HostingConnector(ABC):
    """What the orchestrator needs from a hosting account."""

    @abstractmethod
    def validate(self, host: str, username: str, password: str, port: Optional[int] = None,
                 log_callback: LogCallback = None) -> CredentialCheck:
        ...

    @abstractmethod
    def get_ftp_credentials(self, account: HostingAccount, log_callback: LogCallback = None) -> FtpCredentials:
        ...

    @abstractmethod
    def create_database(self, account: HostingAccount, domain: str,
                        log_callback: LogCallback = None) -> DatabaseProvisioning:
        ...

    @abstractmethod
    def open_transfer(self, ftp_credentials: FtpCredentials) -> FileTransfer:
        ...


class CpanelConnector(HostingConnector):
    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        """
        Args:
            transport: Optional httpx transport, used by tests to stand in for the cPanel host
        """
        self.transport = transport
        self.verify_ssl = settings.verify_ssl

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(timeout=timeout, verify=self.verify_ssl, transport=self.transport)

    def validate(self, host: str, username: str, password: str, port: Optional[int] = None,
                 log_callback: LogCallback = None) -> CredentialCheck:
        """
        Check that host/username/password authenticate against the control panel.

        Never raises for credentials that merely cannot be verified; the result
        carries valid=False instead. Raises ValidationError for missing or malformed input.
        """
        if not host or not username or not password:
            raise ValidationError(
                "Missing required credentials (host, username, or password)",
                details=[name for name, value in (("host", host), ("username", username), ("password", password)) if not value],
            )
        log = log_callback or _noop
        port = int(port or settings.cpanel_default_port)
        host = clean_host(host)
        if not HOST_PATTERN.match(host):
            raise ValidationError("Invalid host: enter the domain name without port or path", details=["host"])
        log(f"Validating cPanel credentials for {host} (port {port})...")

        base = {"host": host, "username": username, "port": port}
        with self._client(settings.validation_timeout) as client:
            outcome = run_profiles(
                client, VALIDATION_PROFILES, host, username, password, port,
                timeout=settings.validation_timeout, log_callback=log,
            )

        if outcome.kind == SUCCEEDED:
            log("cPanel credentials are valid")
            return CredentialCheck(
                valid=True, message="cPanel credentials are valid",
                endpoint=outcome.endpoint, profile=outcome.profile, **base,
            )
        if outcome.kind == INVALID:
            log(f"Credentials rejected: {outcome.reason}")
            return CredentialCheck(
                valid=False, message=outcome.reason,
                endpoint=outcome.endpoint, profile=outcome.profile, **base,
            )
        log("All validation attempts failed")
        return CredentialCheck(
            valid=False,
            message="Failed to validate cPanel credentials. Please check your hosting provider's cPanel configuration.",
            error=outcome.error,
            suggestion="Some hosting providers disable cPanel API access. You may need to contact your hosting provider.",
            **base,
        )

    def get_ftp_credentials(self, account: HostingAccount, log_callback: LogCallback = None) -> FtpCredentials:
        """Derive FTP login from the cPanel account; the main account doubles as the FTP user."""
        log = log_callback or _noop
        host = clean_host(account.host)
        url = f"https://{host}:{account.port}/execute/Ftp/list_ftp"
        log("Getting FTP credentials from cPanel...")
        try:
            with self._client(settings.api_timeout) as client:
                response = client.get(url, auth=(account.username, account.password), headers=GENERIC_HEADERS)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ConnectorError(f"Failed to get FTP credentials: {e}")
        if response.status_code != 200:
            raise ConnectorError(f"Failed to get FTP credentials: cPanel returned HTTP {response.status_code}")
        log("FTP credentials retrieved successfully")
        return FtpCredentials(host=host, user=account.username, password=account.password, port=settings.ftp_port)

    def create_database(self, account: HostingAccount, domain: str,
                        log_callback: LogCallback = None) -> DatabaseProvisioning:
        """
        Create a MySQL database and user for a WordPress site.

        Falls back to manual instructions when no API endpoint answers or any
        of the create/grant calls fail.
        """
        log = log_callback or _noop
        host = clean_host(account.host)
        suffix = random_suffix()
        db_name = f"{account.username}_wp_{suffix}"
        db_user = f"{account.username}_wpuser_{suffix}"
        db_pass = generate_strong_password()

        log(f"Creating MySQL database and user on cPanel for {domain}...")
        try:
            with self._client(settings.api_timeout) as client:
                outcome = run_profiles(
                    client, PROVISIONING_PROFILES, host, account.username, account.password, account.port,
                    timeout=settings.api_timeout, stop_on_invalid=False,
                    skip_profile_on_network_failure=False, log_callback=log,
                )
                if outcome.kind != SUCCEEDED:
                    raise ConnectorError(
                        "No working cPanel API endpoint found. Please check with your hosting provider about API access.",
                        details=outcome.error,
                    )
                log(f"Using cPanel API at {outcome.base_url} ({outcome.profile} profile)")
                self._uapi(client, outcome.base_url, account, "Mysql", "create_database", {"name": db_name}, log)
                self._uapi(client, outcome.base_url, account, "Mysql", "create_user",
                           {"name": db_user, "password": db_pass}, log)
                self._uapi(client, outcome.base_url, account, "Mysql", "set_privileges_on_database",
                           {"user": db_user, "database": db_name, "privileges": "ALL"}, log)
        except ConnectorError as e:
            log(f"Failed to create WordPress database via API: {e.message}")
            log("Falling back to manual database setup...")
            return self.manual_database(account, domain, db_name, db_user, db_pass)

        log("WordPress database and user created successfully")
        return DatabaseProvisioning(db_name=db_name, db_user=db_user, db_pass=db_pass, manual=False)

    def manual_database(self, account: HostingAccount, domain: str, db_name: str, db_user: str,
                        db_pass: str) -> DatabaseProvisioning:
        instructions = DbInstructions(
            cpanel_url=f"https://{clean_host(account.host)}:{account.port}",
            database_name=db_name,
            database_user=db_user,
            database_password=db_pass,
            domain=domain,
        )
        return DatabaseProvisioning(
            db_name=db_name, db_user=db_user, db_pass=db_pass, manual=True, instructions=instructions,
        )

    def _uapi(self, client: httpx.Client, base_url: str, account: HostingAccount, module: str, func: str,
              args: Dict[str, Any], log: Callable[[str], None]) -> Dict[str, Any]:
        url = f"{base_url}/execute/{module}/{func}"
        log(f"Calling cPanel UAPI: {module}/{func}")
        try:
            response = client.get(url, params=args, auth=(account.username, account.password), headers=GENERIC_HEADERS)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ConnectorError(f"cPanel API request {module}/{func} failed: {e}")
        if not 200 <= response.status_code < 300:
            raise ConnectorError(f"cPanel API {module}/{func} returned HTTP {response.status_code}")
        if "json" not in response.headers.get("content-type", ""):
            raise ConnectorError(
                f"Expected JSON response from {module}/{func}, got: {response.headers.get('content-type')}"
            )
        try:
            data = response.json()
        except ValueError:
            raise ConnectorError(f"cPanel API {module}/{func} returned invalid JSON")
        errors = data.get("errors") if isinstance(data, dict) else None
        if errors:
            raise ConnectorError(f"cPanel API Error: {', '.join(str(e) for e in errors)}")
        return data

    def open_transfer(self, ftp_credentials: FtpCredentials) -> FileTransfer:
        return FtpTransfer(ftp_credentials, timeout=settings.ftp_timeout, passive=settings.ftp_passive)


def get_hosting_connector() -> HostingConnector:
    return CpanelConnector()
