"""
Connection profiles for reaching a cPanel API.

A profile is a named set of header variants plus an ordered list of candidate
endpoints. Probing a candidate yields one of three outcomes:

- succeeded: 2xx with a JSON body; the candidate's base URL is usable
- invalid: 401/403, the credentials themselves were rejected
- inconclusive: anything else, including network failures

`run_profiles` walks the table in order and stops at the first definitive
outcome, otherwise it reports the last inconclusive error.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

import httpx


SUCCEEDED = "succeeded"
INVALID = "invalid"
INCONCLUSIVE = "inconclusive"

DEPLOYER_AGENT = "WordPress-Deployer/1.0"
BROWSER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


@dataclass(frozen=True)
class Candidate:
    path: str
    port: Optional[int] = None  # None: use the account's port
    portless: bool = False

    def base_url(self, host: str, account_port: int) -> str:
        if self.portless:
            return f"https://{host}"
        return f"https://{host}:{self.port or account_port}"


@dataclass(frozen=True)
class ConnectionProfile:
    name: str
    header_sets: Tuple[Dict[str, str], ...]
    candidates: Tuple[Candidate, ...]


@dataclass
class AttemptOutcome:
    kind: str
    endpoint: Optional[str] = None
    base_url: Optional[str] = None
    status_code: Optional[int] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    network_failure: bool = False
    profile: Optional[str] = None


GENERIC_HEADERS = {"User-Agent": DEPLOYER_AGENT, "Accept": "application/json"}
BROWSER_HEADERS = {
    "User-Agent": BROWSER_AGENT,
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
}
NO_CACHE_HEADERS = {
    "User-Agent": DEPLOYER_AGENT,
    "Accept": "application/json, text/plain, */*",
    "Cache-Control": "no-cache",
}

_VALIDATION_PATHS = ("/execute/1/", "/execute/", "/json-api/1/", "/json-api/")

VALIDATION_PROFILES: Tuple[ConnectionProfile, ...] = (
    ConnectionProfile(
        name="generic",
        header_sets=(GENERIC_HEADERS,),
        candidates=tuple(Candidate(path) for path in _VALIDATION_PATHS),
    ),
    ConnectionProfile(
        name="provider",
        header_sets=(BROWSER_HEADERS,),
        candidates=tuple(Candidate(path) for path in _VALIDATION_PATHS),
    ),
)

_USER_INFO = "/json-api/uapi/cpanel_info/get_user_information"
_VERSION = "/json-api/version"
_UAPI_DATABASES = "/json-api/uapi/Mysql/get_databases"
_EXECUTE_DATABASES = "/execute/Mysql/get_databases"

PROVISIONING_PROFILES: Tuple[ConnectionProfile, ...] = (
    # Provider-specific: a short list tried under several header variants
    ConnectionProfile(
        name="provider",
        header_sets=(GENERIC_HEADERS, BROWSER_HEADERS, NO_CACHE_HEADERS),
        candidates=(
            Candidate(_USER_INFO, 2083),
            Candidate(_USER_INFO, 2082),
            Candidate(_VERSION, 2087),
            Candidate(_VERSION, 2086),
            Candidate(_UAPI_DATABASES, 2083),
            Candidate(_UAPI_DATABASES, 2082),
            Candidate(_EXECUTE_DATABASES, 2083),
            Candidate(_EXECUTE_DATABASES, 2082),
        ),
    ),
    ConnectionProfile(
        name="generic",
        header_sets=(GENERIC_HEADERS,),
        candidates=tuple(
            Candidate(path, port)
            for path in (_USER_INFO, _VERSION, _EXECUTE_DATABASES)
            for port in (2083, 2082, 2087, 2086)
        ) + (
            Candidate(_USER_INFO, portless=True),
            Candidate(_VERSION, portless=True),
            Candidate(_EXECUTE_DATABASES, portless=True),
        ) + tuple(Candidate(_UAPI_DATABASES, port) for port in (2083, 2082, 2087, 2086)),
    ),
)


def attempt(
    client: httpx.Client,
    url: str,
    base_url: str,
    auth: Tuple[str, str],
    headers: Dict[str, str],
    timeout: float,
) -> AttemptOutcome:
    """Probe one endpoint and classify the response."""
    try:
        response = client.get(url, auth=auth, headers=headers, timeout=timeout)
    except (httpx.ConnectError, httpx.TimeoutException) as e:
        return AttemptOutcome(INCONCLUSIVE, endpoint=url, error=str(e) or e.__class__.__name__, network_failure=True)
    except httpx.InvalidURL as e:
        return AttemptOutcome(INCONCLUSIVE, endpoint=url, error=f"Invalid URL: {e}")
    except httpx.HTTPError as e:
        return AttemptOutcome(INCONCLUSIVE, endpoint=url, error=str(e) or e.__class__.__name__)

    status = response.status_code
    content_type = response.headers.get("content-type", "")
    if 200 <= status < 300 and "json" in content_type:
        try:
            response.json()
        except ValueError:
            return AttemptOutcome(INCONCLUSIVE, endpoint=url, status_code=status, error="Response was not valid JSON")
        return AttemptOutcome(SUCCEEDED, endpoint=url, base_url=base_url, status_code=status)
    if status == 401:
        return AttemptOutcome(INVALID, endpoint=url, status_code=status, reason="Invalid username or password")
    if status == 403:
        return AttemptOutcome(
            INVALID, endpoint=url, status_code=status,
            reason="cPanel API access is disabled or restricted",
        )
    if 200 <= status < 300:
        return AttemptOutcome(INCONCLUSIVE, endpoint=url, status_code=status, error=f"Expected JSON response, got: {content_type or 'unknown'}")
    return AttemptOutcome(INCONCLUSIVE, endpoint=url, status_code=status, error=f"Unexpected response from cPanel (Status: {status})")


def run_profiles(
    client: httpx.Client,
    profiles: Sequence[ConnectionProfile],
    host: str,
    username: str,
    password: str,
    port: int,
    timeout: float,
    stop_on_invalid: bool = True,
    skip_profile_on_network_failure: bool = True,
    log_callback: Optional[Callable[[str], None]] = None,
) -> AttemptOutcome:
    """Walk the profile table; return the first definitive outcome or the last inconclusive one."""
    last = AttemptOutcome(INCONCLUSIVE, error="No endpoints attempted")
    for profile in profiles:
        skip_profile = False
        for candidate in profile.candidates:
            base_url = candidate.base_url(host, port)
            url = f"{base_url}{candidate.path}"
            for headers in profile.header_sets:
                if log_callback:
                    log_callback(f"Trying {profile.name} endpoint: {url}")
                outcome = attempt(client, url, base_url, (username, password), headers, timeout)
                outcome.profile = profile.name
                if outcome.kind == SUCCEEDED or (outcome.kind == INVALID and stop_on_invalid):
                    return outcome
                if outcome.kind == INVALID:
                    outcome = AttemptOutcome(
                        INCONCLUSIVE, endpoint=url, status_code=outcome.status_code,
                        error=outcome.reason, profile=profile.name,
                    )
                last = outcome
                if log_callback:
                    log_callback(f"Endpoint {url} failed: {outcome.error}")
                if outcome.network_failure:
                    # Same URL with other headers cannot do better
                    skip_profile = skip_profile_on_network_failure
                    break
            if skip_profile:
                if log_callback:
                    log_callback(f"Connection error, skipping remaining {profile.name} endpoints")
                break
    return last
