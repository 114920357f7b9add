"""Transports that copy archive bytes from a source to a local file."""

import logging
import shutil
import subprocess
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Sequence, Tuple
from urllib.error import URLError
from urllib.parse import quote, urlsplit, urlunsplit

import requests

from .common import SourceUnavailableError, ToolNotFoundError
from .sources import Source, SourceScheme, parse_source

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class DownloadOptions:
    """Credentials and transport flags passed through to the transport."""
    username: Optional[str] = None
    password: Optional[str] = None
    cookie: Optional[str] = None
    proxy_server: Optional[str] = None
    proxy_type: Optional[str] = None
    allow_insecure: bool = False
    extra_args: Tuple[str, ...] = ()

    def proxy_url(self) -> Optional[str]:
        """Proxy URL, prefixing ``proxy_type`` when the server has no scheme."""
        if not self.proxy_server:
            return None
        if "://" in self.proxy_server:
            return self.proxy_server
        proxy_type = self.proxy_type if self.proxy_type and self.proxy_type != "none" else "http"
        return f"{proxy_type}://{self.proxy_server}"


class Transport(Protocol):
    """Copies the bytes behind a source into ``destination``."""

    def fetch(self, source: Source, destination: Path, options: DownloadOptions) -> None:
        ...


class LocalCopyTransport:
    """Copies plain paths and ``file://`` URIs."""

    def fetch(self, source: Source, destination: Path, options: DownloadOptions) -> None:
        path = source.local_path()
        if not path.exists():
            raise SourceUnavailableError(f"Source file: {source} does not exist", source=str(source))

        logger.debug(f"Copying {path} to {destination}")
        shutil.copy(path, destination)

    def read_text(self, url: str, options: DownloadOptions) -> str:
        path = parse_source(url).local_path()
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise SourceUnavailableError(f"Unable to read {url}: {e}", url=url) from e


class HttpTransport:
    """Streams HTTP(S) sources through a requests session."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.chunk_size = chunk_size

    def _get(self, url: str, options: DownloadOptions, stream: bool) -> requests.Response:
        headers = {"Cookie": options.cookie} if options.cookie else {}
        auth = (options.username, options.password or "") if options.username else None
        proxy = options.proxy_url()
        proxies = {"http": proxy, "https": proxy} if proxy else None

        try:
            response = self.session.get(
                url,
                headers=headers,
                auth=auth,
                proxies=proxies,
                verify=not options.allow_insecure,
                timeout=self.timeout,
                stream=stream,
            )
        except requests.RequestException as e:
            raise SourceUnavailableError(f"Unable to fetch {url}: {e}", url=url) from e

        if not response.ok:
            response.close()
            raise SourceUnavailableError(
                f"Unable to fetch {url}: HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response

    def fetch(self, source: Source, destination: Path, options: DownloadOptions) -> None:
        logger.debug(f"Downloading {source} to {destination}")
        response = self._get(source.locator, options, stream=True)
        try:
            with response, open(destination, "wb") as f:
                for chunk in response.iter_content(self.chunk_size):
                    f.write(chunk)
        except requests.RequestException as e:
            raise SourceUnavailableError(f"Download of {source} interrupted: {e}", url=source.locator) from e

    def read_text(self, url: str, options: DownloadOptions) -> str:
        response = self._get(url, options, stream=False)
        return response.text


class FtpTransport:
    """Fetches FTP sources through urllib."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.timeout = timeout
        self.chunk_size = chunk_size

    @staticmethod
    def _with_credentials(url: str, options: DownloadOptions) -> str:
        parts = urlsplit(url)
        if not options.username or "@" in parts.netloc:
            return url
        userinfo = quote(options.username, safe="")
        if options.password:
            userinfo += ":" + quote(options.password, safe="")
        return urlunsplit(parts._replace(netloc=f"{userinfo}@{parts.netloc}"))

    def _open(self, url: str, options: DownloadOptions):
        handlers = []
        proxy = options.proxy_url()
        if proxy:
            handlers.append(urllib.request.ProxyHandler({"ftp": proxy}))
        opener = urllib.request.build_opener(*handlers)

        try:
            return opener.open(self._with_credentials(url, options), timeout=self.timeout)
        except (URLError, OSError) as e:
            raise SourceUnavailableError(f"Unable to fetch {url}: {e}", url=url) from e

    def fetch(self, source: Source, destination: Path, options: DownloadOptions) -> None:
        logger.debug(f"Downloading {source} to {destination}")
        with self._open(source.locator, options) as response, open(destination, "wb") as f:
            shutil.copyfileobj(response, f, self.chunk_size)

    def read_text(self, url: str, options: DownloadOptions) -> str:
        with self._open(url, options) as response:
            return response.read().decode("utf-8", errors="replace")


class CommandTransport:
    """Copies bucket objects with an external CLI (``aws s3 cp``, ``gsutil cp``)."""

    def __init__(
        self,
        command: str,
        subcommand: Sequence[str],
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.command = command
        self.subcommand = tuple(subcommand)
        self.runner = runner
        self.which = which

    def fetch(self, source: Source, destination: Path, options: DownloadOptions) -> None:
        executable = self.which(self.command)
        if executable is None:
            raise ToolNotFoundError(
                f"Tool '{self.command}' is required for {source.scheme.value} sources but not available",
                tool=self.command,
            )

        argv = [executable, *self.subcommand, source.locator, str(destination), *options.extra_args]
        logger.debug(f"Running {' '.join(argv)}")

        try:
            result = self.runner(argv, capture_output=True, text=True, check=False)
        except OSError as e:
            raise SourceUnavailableError(f"Unable to run {self.command}: {e}", tool=self.command) from e

        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            raise SourceUnavailableError(
                f"{self.command} exited with status {result.returncode} fetching {source}: {output}",
                tool=self.command,
                returncode=result.returncode,
            )


class NativeTransport:
    """Delegates to a fetch function supplied by the host runtime."""

    def __init__(self, fetcher: Optional[Callable[[str, Path], None]] = None) -> None:
        self.fetcher = fetcher

    def fetch(self, source: Source, destination: Path, options: DownloadOptions) -> None:
        if self.fetcher is None:
            raise SourceUnavailableError(f"No native fetcher registered for {source}", source=str(source))
        self.fetcher(source.locator, destination)


def default_transports(
    timeout: float = DEFAULT_TIMEOUT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    aws_command: str = "aws",
    gsutil_command: str = "gsutil",
    native_fetcher: Optional[Callable[[str, Path], None]] = None,
) -> Dict[SourceScheme, Transport]:
    """Build one transport per source scheme."""
    local = LocalCopyTransport()
    return {
        SourceScheme.LOCAL: local,
        SourceScheme.FILE: local,
        SourceScheme.HTTP: HttpTransport(timeout=timeout, chunk_size=chunk_size),
        SourceScheme.FTP: FtpTransport(timeout=timeout, chunk_size=chunk_size),
        SourceScheme.S3: CommandTransport(aws_command, ("s3", "cp")),
        SourceScheme.GS: CommandTransport(gsutil_command, ("cp",)),
        SourceScheme.NATIVE: NativeTransport(native_fetcher),
    }


def read_remote_text(url: str, options: DownloadOptions, transports: Dict[SourceScheme, Transport]) -> str:
    """Read a small text document (a checksum file) through the transport for its scheme."""
    source = parse_source(url)
    transport = transports.get(source.scheme)
    read_text = getattr(transport, "read_text", None)
    if read_text is None:
        raise SourceUnavailableError(f"Cannot read remote text from {url}", url=url)
    return read_text(url, options)
