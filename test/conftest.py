"""
Test configuration and shared fixtures for the asset subsystem.
"""

import ftplib
import io
import logging
import os
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from asset_stager.core.exceptions import AssetNotFoundError, NetworkError
from asset_stager.core.schemas import DeployConfig, RemoteEntry

logger = logging.getLogger(__name__)


def setup_logging():
    """Log every test run to the console and to test/test_output/logs."""
    log_dir = Path("test/test_output/logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "test_run.log"

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)-8s [%(name)s:%(lineno)d] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(filename=log_file, mode="a", encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Drop existing handlers to avoid duplicate lines
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Quiet noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.getLogger("asset_stager").setLevel(logging.DEBUG)
    logging.getLogger("test").setLevel(logging.DEBUG)

    return log_file


def pytest_configure(config):  # pylint: disable=unused-argument
    log_file = setup_logging()

    logger = logging.getLogger("pytest")
    logger.info("=" * 80)
    logger.info("STARTING TEST RUN")
    logger.info("=" * 80)
    logger.info("Working directory: %s", os.getcwd())
    logger.info("Log file: %s", log_file)
    logger.info("-" * 80)


@pytest.fixture(autouse=True)
def log_test_name(request):
    """Log test name when test starts and finishes."""
    logger = logging.getLogger(request.node.nodeid)
    logger.info("Starting test: %s", request.node.name)
    start_time = datetime.now()

    def log_test_end():
        duration = (datetime.now() - start_time).total_seconds()
        has_rep_call = hasattr(request.node, "rep_call")
        if has_rep_call and request.node.rep_call.failed:
            logger.error("Test failed after %.2fs", duration)
        else:
            logger.info("Test finished after %.2fs", duration)
        logger.info("-" * 80)

    request.addfinalizer(log_test_end)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Add test result to report object."""
    outcome = yield
    rep = outcome.get_result()
    setattr(item, f"rep_{rep.when}", rep)


# -------------------- Archives --------------------
def _build_zip(path: Path, members: Dict[str, Union[bytes, str]], modes: Optional[Dict[str, int]] = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    modes = modes or {}
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            if name in modes:
                info = zipfile.ZipInfo(name)
                info.external_attr = modes[name] << 16
                zf.writestr(info, data)
            else:
                zf.writestr(name, data)
    return path


@pytest.fixture
def make_zip():
    """Build a zip file from {member_name: content} (optional {member_name: mode})."""
    return _build_zip


def zip_bytes(members: Dict[str, Union[bytes, str]]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def make_zip_bytes():
    return zip_bytes


# -------------------- Configuration --------------------
@pytest.fixture
def make_config(tmp_path):
    """DeployConfig rooted in tmp_path with the given catalog entries."""

    def _make(catalog: Optional[Dict[str, dict]] = None, **ftp) -> DeployConfig:
        return DeployConfig.model_validate(
            {
                "root_path": str(tmp_path / "root"),
                "assets_cache_path": str(tmp_path / "cache"),
                "ftp_config": {
                    "host": ftp.get("host", "ftp.example.com"),
                    "user": ftp.get("user", "deploy"),
                    "pass": ftp.get("password", "secret"),
                },
                "asset_catalog": catalog or {},
            }
        )

    return _make


# -------------------- HTTP doubles --------------------
class DummyResponse:
    """Just enough of requests.Response for streaming downloads."""

    def __init__(
        self,
        body: bytes = b"",
        status_code: int = 200,
        reason: str = "OK",
        *,
        advertise_length: bool = True,
        headers: Optional[Dict[str, str]] = None,
        fail_after_chunks: Optional[int] = None,
    ):
        self.body = body
        self.status_code = status_code
        self.reason = reason
        self.headers = CaseInsensitiveDict(headers or {})
        if advertise_length and "Content-Length" not in self.headers:
            self.headers["Content-Length"] = str(len(body))
        self.fail_after_chunks = fail_after_chunks
        self.closed = False
        self.chunks_served = 0

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            if self.fail_after_chunks is not None and self.chunks_served >= self.fail_after_chunks:
                raise requests.ConnectionError("connection reset by peer")
            self.chunks_served += 1
            yield self.body[i : i + chunk_size]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class DummySession:
    """requests.Session stand-in mapping URLs to DummyResponse objects."""

    def __init__(self, responses: Optional[Dict[str, Union[DummyResponse, Exception]]] = None):
        self.responses = dict(responses or {})
        self.calls: List[dict] = []

    def get(self, url, stream=False, timeout=None):
        self.calls.append({"url": url, "stream": stream, "timeout": timeout})
        resp = self.responses.get(url)
        if resp is None:
            return DummyResponse(b"not found", status_code=404, reason="Not Found")
        if isinstance(resp, Exception):
            raise resp
        return resp


@pytest.fixture
def dummy_session():
    return DummySession()


# -------------------- FTP doubles --------------------
class FakeSocket:
    def __init__(self):
        self.timeout = "unset"

    def settimeout(self, value):
        self.timeout = value


class FakeDataConn:
    def __init__(self, data: bytes, recv_error: Optional[Exception] = None):
        self._buf = io.BytesIO(data)
        self.recv_error = recv_error
        self.closed = False
        self.reads = 0

    def recv(self, n):
        if self.recv_error is not None and self.reads >= 1:
            raise self.recv_error
        self.reads += 1
        return self._buf.read(n)

    def close(self):
        self.closed = True


class FakeFTP:
    """In-memory ftplib.FTP replacement serving files from a dict."""

    def __init__(
        self,
        files: Optional[Dict[str, bytes]] = None,
        *,
        connect_error: Optional[Exception] = None,
        login_error: Optional[Exception] = None,
        size_error: Optional[Exception] = None,
        recv_error: Optional[Exception] = None,
        mlsd_entries: Optional[Iterable] = None,
        list_lines: Optional[List[str]] = None,
    ):
        self.files = dict(files or {})
        self.connect_error = connect_error
        self.login_error = login_error
        self.size_error = size_error
        self.recv_error = recv_error
        self.mlsd_entries = mlsd_entries
        self.list_lines = list_lines or []
        self.calls: List[tuple] = []
        self.sock: Optional[FakeSocket] = None
        self.timeout = None
        self.quit_called = False
        self.closed = False
        self.data_conns: List[FakeDataConn] = []

    def connect(self, host, port, timeout=None):
        self.calls.append(("connect", host, port, timeout))
        if self.connect_error is not None:
            raise self.connect_error
        self.sock = FakeSocket()
        return "220 welcome"

    def login(self, user, passwd):
        self.calls.append(("login", user, passwd))
        if self.login_error is not None:
            raise self.login_error
        return "230 logged in"

    def quit(self):
        self.quit_called = True
        return "221 bye"

    def close(self):
        self.closed = True

    def voidcmd(self, cmd):
        self.calls.append(("voidcmd", cmd))
        return "200 OK"

    def size(self, path):
        self.calls.append(("size", path))
        if self.size_error is not None:
            raise self.size_error
        if path not in self.files:
            raise ftplib.error_perm("550 No such file")
        return len(self.files[path])

    def transfercmd(self, cmd):
        self.calls.append(("transfercmd", cmd))
        path = cmd.split(" ", 1)[1]
        if path not in self.files:
            raise ftplib.error_perm("550 No such file")
        conn = FakeDataConn(self.files[path], self.recv_error)
        self.data_conns.append(conn)
        return conn

    def voidresp(self):
        return "226 Transfer complete"

    def mlsd(self, path="", facts=[]):
        self.calls.append(("mlsd", path))
        if self.mlsd_entries is None:
            raise ftplib.error_perm("500 MLSD not understood")
        return iter(self.mlsd_entries)

    def retrlines(self, cmd, callback=None):
        self.calls.append(("retrlines", cmd))
        for line in self.list_lines:
            callback(line)
        return "226 Transfer complete"


# -------------------- Asset manager double --------------------
class FakeAssetManager:
    """In-memory IAssetManager used by callers' tests; records every call."""

    def __init__(self, config: DeployConfig, failing: Iterable[str] = ()):
        self._config = config
        self.failing = set(failing)
        self.calls: List[tuple] = []

    @property
    def config(self) -> DeployConfig:
        return self._config

    def _check(self, op: str, name: str):
        self.calls.append((op, name))
        if name not in self._config.asset_catalog:
            raise AssetNotFoundError(f"asset '{name}' not found in catalog", asset_name=name)
        if name in self.failing:
            raise NetworkError(f"{op} failed", asset_name=name)
        return self._config.asset_catalog[name]

    def download_to_cache(self, asset_name):
        desc = self._check("download_to_cache", asset_name)
        return Path(self._config.assets_cache_path) / desc.file_name

    def process_from_cache(self, asset_name, cache_path):
        self._check("process_from_cache", asset_name)

    def get(self, asset_name):
        desc = self._check("get", asset_name)
        return Path(self._config.root_path) / desc.destination

    def purge_asset(self, asset_name):
        self._check("purge_asset", asset_name)

    def extract_file(self, archive_path, member_path, dest_path):
        self.calls.append(("extract_file", str(archive_path), member_path, str(dest_path)))

    def list_remote_directory(self, path):
        self.calls.append(("list_remote_directory", path))
        return [RemoteEntry(name="v1", is_directory=True), RemoteEntry(name="notes.txt")]

    def download_http(self, url, local_path):
        self.calls.append(("download_http", url))
        return False

    def download_ftp(self, ftp_path, local_path):
        self.calls.append(("download_ftp", ftp_path))
        return False

    def fetch_url_to_cache(self, url):
        self.calls.append(("fetch_url_to_cache", url))
        return Path(self._config.assets_cache_path) / url.rsplit("/", 1)[-1]


@pytest.fixture
def fake_manager(make_config):
    config = make_config(
        {
            "pkgA": {"url": "http://x/test.zip", "type": "zip", "destination": "appA"},
            "pkgB": {"url": "http://x/tool.exe", "type": "file", "destination": "tools"},
        }
    )
    return FakeAssetManager(config)
