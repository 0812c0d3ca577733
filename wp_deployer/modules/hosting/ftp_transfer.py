import ftplib
import logging
import posixpath
from pathlib import Path
from typing import Optional

from wp_deployer.core.exceptions import ConnectorError
from wp_deployer.modules.hosting.schemas import FtpCredentials

logger = logging.getLogger(__name__)


class FileTransfer:
    """Remote file sink used by the orchestrator. Subclasses implement the transport."""

    def __enter__(self) -> "FileTransfer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def ensure_dir(self, remote_dir: str) -> None:
        raise NotImplementedError

    def upload(self, local_path: Path, remote_path: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class FtpTransfer(FileTransfer):
    def __init__(self, credentials: FtpCredentials, timeout: float = 60.0, passive: bool = True):
        self.credentials = credentials
        self.timeout = timeout
        self.passive = passive
        self._ftp: Optional[ftplib.FTP] = None

    def __enter__(self) -> "FtpTransfer":
        self.connect()
        return self

    def connect(self) -> None:
        creds = self.credentials
        logger.info(f"Connecting to FTP {creds.host}:{creds.port} as {creds.user}")
        ftp = ftplib.FTP(timeout=self.timeout)
        try:
            ftp.connect(creds.host, creds.port)
            ftp.login(creds.user, creds.password)
            ftp.set_pasv(self.passive)
        except ftplib.all_errors as e:
            ftp.close()
            raise ConnectorError(f"FTP connection failed: {e}")
        self._ftp = ftp

    @property
    def ftp(self) -> ftplib.FTP:
        if self._ftp is None:
            raise ConnectorError("FTP connection is not open")
        return self._ftp

    def ensure_dir(self, remote_dir: str) -> None:
        """Create remote_dir and any missing parents."""
        current = "/" if remote_dir.startswith("/") else ""
        for part in [p for p in remote_dir.split("/") if p]:
            current = posixpath.join(current, part)
            try:
                self.ftp.mkd(current)
            except ftplib.error_perm as e:
                # 550: already exists (or not permitted, which the upload will surface)
                if not str(e).startswith("550"):
                    raise ConnectorError(f"Could not create remote directory {current}: {e}")
            except ftplib.all_errors as e:
                raise ConnectorError(f"Could not create remote directory {current}: {e}")

    def upload(self, local_path: Path, remote_path: str) -> None:
        try:
            with open(local_path, "rb") as f:
                self.ftp.storbinary(f"STOR {remote_path}", f)
        except ftplib.all_errors as e:
            raise ConnectorError(f"FTP upload of {remote_path} failed: {e}")

    def close(self) -> None:
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except ftplib.all_errors:
            self._ftp.close()
        finally:
            self._ftp = None
