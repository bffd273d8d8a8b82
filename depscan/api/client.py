"""HTTP client for the dependency report service."""

from __future__ import annotations

import hashlib
import io
import json
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from .. import __version__
from ..errors import LocatorError, MissingAPIKeyError, UploadError
from ..logging import get_logger
from ..models import FETCHERS, Locator, ModuleType, locator_safe

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from ..config import DepscanConfig
    from ..normalize import SourceUnit

DEFAULT_ENDPOINT = "https://app.depscan.io"
CUSTOM_FETCHER = "custom"

Opener = Callable[..., Any]

MISSING_API_KEY_HELP = """
Running `depscan analyze` performs a dependency analysis and uploads the
result. To run an analysis without uploading results, run:

    depscan analyze --output

You can provide your API key by setting the $DEPSCAN_API_KEY environment
variable. For example, try running:

    DEPSCAN_API_KEY=<YOUR_API_KEY_HERE> depscan analyze

You can create an API key for your account at:

    {endpoint}/account/settings/integrations/api_tokens
"""


@dataclass
class UploadOptions:
    """Optional metadata attached to an uploaded build."""

    branch: Optional[str] = None
    project_url: Optional[str] = None
    jira_project_key: Optional[str] = None
    link: Optional[str] = None
    team: Optional[str] = None

    def query(self) -> List[Tuple[str, str]]:
        params = (
            ("branch", self.branch),
            ("projectURL", self.project_url),
            ("jiraProjectKey", self.jira_project_key),
            ("link", self.link),
            ("team", self.team),
        )
        return [(key, value) for key, value in params if value]


class APIClient:
    """Uploads raw archives and normalized analyses to the service."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        timeout: float = 60.0,
        opener: Opener | None = None,
    ) -> None:
        if not api_key:
            raise MissingAPIKeyError(
                "An API key is needed to upload results.",
                code="E_MISSING_API_KEY",
                troubleshooting=MISSING_API_KEY_HELP.format(endpoint=endpoint.rstrip("/")),
            )
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self._open = opener or urlopen
        self.logger = get_logger("api")

    @classmethod
    def from_config(cls, config: "DepscanConfig", *, opener: Opener | None = None) -> "APIClient":
        return cls(config.api_key or "", config.endpoint, timeout=config.timeout, opener=opener)

    def upload_tarball(self, path: str) -> Locator:
        """Upload a directory or file as a gzip archive addressed by its content."""
        source = Path(path).expanduser()
        if not source.exists():
            raise UploadError(f"Raw module path {source} does not exist")
        name = source.resolve().name
        archive, digest = build_tarball(source)
        query = urlencode({"packageSpec": name, "revision": digest})
        payload = self._request(
            f"/api/components/archive?{query}",
            archive,
            content_type="application/gzip",
        )
        default = Locator(
            fetcher=FETCHERS[ModuleType.RAW.value], project=locator_safe(name), revision=digest
        )
        return _locator_from_response(payload, default)

    def upload(
        self,
        title: str,
        locator: Locator,
        options: UploadOptions,
        units: Sequence["SourceUnit"],
    ) -> Locator:
        """Upload normalized source units and return the resulting build locator."""
        if not locator.project:
            raise UploadError(
                "No project name found. Set `project.name` in .depscan.yml or pass --project."
            )
        if locator.fetcher != CUSTOM_FETCHER and not locator.revision:
            raise UploadError(
                "Could not infer a revision. Pass --revision, or set the fetcher to "
                f"`{CUSTOM_FETCHER}` in .depscan.yml to submit a custom project."
            )

        params: List[Tuple[str, str]] = [("locator", str(locator)), ("v", __version__)]
        if locator.fetcher == CUSTOM_FETCHER:
            params.extend([("managedBuild", "true"), ("title", title or locator.project)])
        params.extend(options.query())

        body = json.dumps([unit.to_dict() for unit in units]).encode("utf-8")
        self.logger.debug("Uploading %d source unit(s) for %s", len(units), locator)
        payload = self._request(f"/api/builds/custom?{urlencode(params)}", body)
        return _locator_from_response(payload, None)

    def report_url(self, locator: Locator, branch: Optional[str] = None) -> str:
        return locator.report_url(self.endpoint, branch)

    # ------------------------------------------------------------------
    # Transport

    def _request(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str = "application/json",
    ) -> Dict[str, Any]:
        headers = {
            "Content-Type": content_type,
            "Authorization": f"token {self.api_key}",
            "User-Agent": f"depscan/{__version__}",
        }
        http_request = Request(f"{self.endpoint}{path}", data=data, headers=headers, method="POST")
        try:
            with self._open(http_request, timeout=self.timeout) as response:
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            if exc.code == 428:
                raise UploadError(
                    "Invalid project or revision; make sure this version is published and "
                    "the service has access to your repository.",
                    status=exc.code,
                ) from exc
            if exc.code in (401, 403):
                raise UploadError(
                    f"The API key was rejected (status {exc.code}).", status=exc.code
                ) from exc
            message = detail.strip() or exc.reason
            raise UploadError(f"Upload failed with status {exc.code}: {message}", status=exc.code) from exc
        except URLError as exc:
            raise UploadError(f"Could not reach {self.endpoint}: {exc.reason}") from exc

        if not raw:
            return {}
        try:
            payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise UploadError("Service returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise UploadError("Service returned an unexpected response")
        if payload.get("error"):
            raise UploadError(f"Service reported an error: {payload['error']}")
        return payload


def build_tarball(source: Path) -> Tuple[bytes, str]:
    """Return gzip archive bytes and a digest of member names and contents."""
    if source.is_dir():
        files = sorted(path for path in source.rglob("*") if path.is_file())
        base = source
    else:
        files = [source]
        base = source.parent

    digest = hashlib.sha256()
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for path in files:
            arcname = path.relative_to(base).as_posix()
            content = path.read_bytes()
            digest.update(arcname.encode("utf-8"))
            digest.update(b"\0")
            digest.update(content)
            digest.update(b"\0")
            info = tarfile.TarInfo(name=arcname)
            info.size = len(content)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue(), digest.hexdigest()


def _locator_from_response(payload: Dict[str, Any], default: Optional[Locator]) -> Locator:
    text = payload.get("locator")
    if isinstance(text, str) and text:
        try:
            return Locator.parse(text).validate()
        except LocatorError as exc:
            raise UploadError(f"Service returned an invalid locator '{text}'") from exc
    if default is None:
        raise UploadError("Service response did not include a locator")
    return default


__all__ = [
    "APIClient",
    "CUSTOM_FETCHER",
    "DEFAULT_ENDPOINT",
    "UploadOptions",
    "build_tarball",
]
