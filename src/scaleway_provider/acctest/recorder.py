"""HTTP cassette recorder used by acceptance tests.

In record mode every request goes to the network and the exchange is saved
to a YAML cassette. In replay mode requests are answered from the cassette,
so tests run without credentials or network access.
"""

import io
import http.client
import json
import os
import re
import xml.etree.ElementTree as ElementTree
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qs, urlparse

import requests
import yaml
from requests.adapters import BaseAdapter, HTTPAdapter
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

from scaleway_provider.api.transport import new_retryable_session
from scaleway_provider.utils.logging import get_logger
from scaleway_provider.utils.retry import RetryStrategy

logger = get_logger(__name__)

UPDATE_CASSETTES_ENV = "TF_UPDATE_CASSETTES"
CASSETTE_SUFFIX = ".cassette"
CASSETTE_VERSION = 1

AUTH_HEADERS = ("X-Auth-Token", "Authorization")

# Response fields replaced by a fixed value before a cassette is saved
SENSITIVE_FIELDS: Dict[str, Any] = {
    "secret_key": "00000000-0000-0000-0000-000000000000",
}

# Query parameters ignored when matching requests
QUERY_MATCHER_IGNORE = (
    "organization_id",
)

# JSON body keys ignored when matching requests
BODY_MATCHER_IGNORE = (
    "organization",
    "organization_id",
    "project_id",
    "project",
)

S3_WEBSITE_SUFFIX = ".s3-website.fr-par.scw.cloud"
SCW_CLOUD_SUFFIX = "scw.cloud"

_SPECIAL_CHARS = re.compile(r'[\\?%*:|"<>. ]')
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_GENERATED_NUMBER = re.compile(r"\d+")

Interaction = Dict[str, Dict[str, Any]]


class RecorderMode(Enum):
    REPLAY = "replay"
    RECORD = "record"


class InteractionNotFoundError(Exception):
    """No unused cassette interaction matches the request."""


class CassetteNotFoundError(FileNotFoundError):
    """Replay mode needs an existing cassette."""


def update_cassettes(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Record mode requested through TF_UPDATE_CASSETTES."""
    environ = os.environ if environ is None else environ
    return environ.get(UPDATE_CASSETTES_ENV) == "true"


def get_test_file_path(test_name: str, suffix: str, base_dir: Optional[Union[str, Path]] = None) -> Path:
    """File of a test under `<base_dir>/testdata`, named after the test.

    Nested test separators become dashes, CamelCase becomes kebab-case and
    characters that are not file-system friendly are removed.

    Args:
        test_name: Name of the test, eg `test_rdb_instance/basic`
        suffix: File suffix, eg `.cassette`
        base_dir: Directory holding testdata/, the working directory by default

    Returns:
        Path of the file
    """
    file_name = test_name.replace("/", "-")
    file_name = _CAMEL_BOUNDARY.sub("-", file_name).replace("_", "-").lower()
    file_name = _SPECIAL_CHARS.sub("", file_name) + suffix
    if file_name.startswith("test-acc-scaleway-"):
        file_name = file_name[len("test-acc-scaleway-"):]
    return Path(base_dir or ".") / "testdata" / file_name


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _is_file(body: Any) -> bool:
    return hasattr(body, "read")


def _form_of(body: str, content_type: str) -> Dict[str, List[str]]:
    if "application/x-www-form-urlencoded" not in content_type:
        return {}
    return parse_qs(body, keep_blank_values=True)


class Cassette:
    """Ordered list of recorded HTTP interactions stored as YAML.

    Each interaction holds the request (method, url, headers, body, form) and
    the response (status, headers, body). An interaction is served at most
    once during replay.
    """

    def __init__(self, path: Union[str, Path], interactions: Optional[List[Interaction]] = None):
        self.path = Path(path)
        self.interactions: List[Interaction] = interactions or []
        self._used: List[bool] = [False] * len(self.interactions)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Cassette":
        """Load a cassette file.

        Raises:
            CassetteNotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.exists():
            raise CassetteNotFoundError(f"cassette {path} not found, record it with {UPDATE_CASSETTES_ENV}=true")
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(path, data.get("interactions") or [])

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(
                {"version": CASSETTE_VERSION, "interactions": self.interactions},
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )
        logger.debug(f"Saved {len(self.interactions)} interactions to {self.path}")

    def add(self, interaction: Interaction) -> None:
        self.interactions.append(interaction)
        self._used.append(True)

    def find(self, request: requests.PreparedRequest, matcher: Callable[[requests.PreparedRequest, Dict[str, Any]], bool]) -> Interaction:
        """First unused interaction matching the request, marked as used.

        Raises:
            InteractionNotFoundError: If no unused interaction matches
        """
        for i, interaction in enumerate(self.interactions):
            if self._used[i]:
                continue
            if matcher(request, interaction["request"]):
                self._used[i] = True
                return interaction
        raise InteractionNotFoundError(
            f"requested interaction not found in {self.path}: {request.method} {request.url}"
        )


def strip_auth_headers(headers: Mapping[str, Any]) -> Dict[str, str]:
    """Request headers without credentials."""
    hidden = {name.lower() for name in AUTH_HEADERS}
    return {name: _text(value) for name, value in headers.items() if name.lower() not in hidden}


def anonymize_sensitive_fields(body: str) -> str:
    """Replace the SENSITIVE_FIELDS of a JSON object body."""
    try:
        data = json.loads(body)
    except ValueError:
        return body
    if not isinstance(data, dict) or not any(key in data for key in SENSITIVE_FIELDS):
        return body
    for key, value in SENSITIVE_FIELDS.items():
        if key in data:
            data[key] = value
    return json.dumps(data)


def extract_test_generated_name_prefix(name: str) -> str:
    """Prefix of a test generated name `{prefix}-{number}`, the name otherwise.

    Example: test-acc-scaleway-project-3723338038624371236 -> test-acc-scaleway-project
    """
    prefix, dash, generated = name.rpartition("-")
    if not dash or not _GENERATED_NUMBER.fullmatch(generated):
        return name
    return prefix


def extract_generated_name_prefix(name: str) -> str:
    """Prefix of a provider generated name `tf-{prefix}-{word}-{word}`.

    Example: tf-sg-gifted-yonath -> sg
    """
    if name.count("-") < 3:
        return name
    if name.startswith("tf-"):
        name = name[len("tf-"):]
    name = name[:name.rindex("-")]
    return name[:name.rindex("-")]


def compare_json_fields_strings(expected: str, actual: str) -> bool:
    """Compare two request strings, tolerating generated names."""
    if actual.endswith(S3_WEBSITE_SUFFIX):
        actual = actual[:-len(S3_WEBSITE_SUFFIX)]
        if expected.endswith(S3_WEBSITE_SUFFIX):
            expected = expected[:-len(S3_WEBSITE_SUFFIX)]

    expected_handled, actual_handled = expected, actual

    if "-" in actual:
        expected_handled = extract_test_generated_name_prefix(expected)
        actual_handled = extract_test_generated_name_prefix(actual)

    if actual_handled == actual and actual.startswith("tf-"):
        expected_handled = extract_generated_name_prefix(expected)
        actual_handled = extract_generated_name_prefix(actual)

    return expected_handled == actual_handled


def compare_json_fields(expected: Any, actual: Any) -> bool:
    """Only strings are compared; any other value type is considered equal."""
    if isinstance(actual, str):
        if not isinstance(expected, str):
            return False
        return compare_json_fields_strings(expected, actual)
    return True


def compare_json_bodies(expected: Mapping[str, Any], actual: Mapping[str, Any]) -> bool:
    """Compare two decoded bodies.

    Keys only present in the actual request are accepted (new API fields);
    keys of the cassette missing from the actual request fail the match
    unless they were recorded as null.
    """
    for key, value in actual.items():
        if key not in expected:
            continue
        if not compare_json_fields(expected[key], value):
            return False

    for key, value in expected.items():
        if key not in actual and value is not None:
            return False
    return True


def _is_xml(body: str) -> bool:
    try:
        ElementTree.fromstring(body)
    except ElementTree.ParseError:
        return False
    return True


def cassette_body_matcher(actual: requests.PreparedRequest, expected: Mapping[str, Any]) -> bool:
    """Match the body of a request against a recorded one."""
    body = actual.body
    expected_body = expected.get("body") or ""

    if _is_file(body):
        return True
    if not body:
        return expected_body == ""

    raw = _text(body)
    if raw == expected_body:
        return True

    # S3 XML payloads embed generated values, any XML body matches
    if _is_xml(raw):
        return True

    try:
        actual_json = json.loads(raw)
    except ValueError:
        values = parse_qs(raw, keep_blank_values=True)
        for key in BODY_MATCHER_IGNORE:
            values.pop(key, None)
        return compare_json_bodies(expected.get("form") or {}, values)

    try:
        expected_json = json.loads(expected_body)
    except ValueError:
        return False

    if not isinstance(actual_json, dict) or not isinstance(expected_json, dict):
        return actual_json == expected_json

    for key in BODY_MATCHER_IGNORE:
        actual_json.pop(key, None)
        expected_json.pop(key, None)
    return compare_json_bodies(expected_json, actual_json)


def _strip_bucket_suffix(bucket: str) -> str:
    if "-" in bucket:
        return bucket[:bucket.rindex("-")]
    return bucket


def _query(query: str) -> Dict[str, List[str]]:
    values = parse_qs(query, keep_blank_values=True)
    for key in QUERY_MATCHER_IGNORE:
        values.pop(key, None)
    return values


def cassette_matcher(actual: requests.PreparedRequest, expected: Mapping[str, Any]) -> bool:
    """Match a request against a recorded one.

    Method, path and query (minus QUERY_MATCHER_IGNORE) must be equal. S3
    hosts `<bucket>.s3.<region>.scw.cloud` match when the buckets are equal
    once their random `-<n>` suffix is removed. Bodies are compared with
    cassette_body_matcher().
    """
    actual_url = urlparse(actual.url)
    expected_url = urlparse(expected.get("url", ""))

    actual_host = actual_url.hostname or ""
    expected_host = expected_url.hostname or ""
    if actual_host.endswith(SCW_CLOUD_SUFFIX):
        if not expected_host.endswith(SCW_CLOUD_SUFFIX):
            return False
        actual_parts = actual_host.split(".")
        expected_parts = expected_host.split(".")
        # bucket.s3.region.scw.cloud; hosts without a bucket have fewer parts
        if len(actual_parts) >= 5 and len(expected_parts) >= 5:
            if _strip_bucket_suffix(actual_parts[0]) != _strip_bucket_suffix(expected_parts[0]):
                return False

    return (
        actual.method == expected.get("method")
        and actual_url.path == expected_url.path
        and _query(actual_url.query) == _query(expected_url.query)
        and cassette_body_matcher(actual, expected)
    )


class RecorderAdapter(BaseAdapter):
    """Transport adapter recording to or replaying from a cassette."""

    def __init__(
        self,
        cassette: Cassette,
        mode: RecorderMode = RecorderMode.REPLAY,
        inner: Optional[BaseAdapter] = None,
        matcher: Callable[[requests.PreparedRequest, Mapping[str, Any]], bool] = cassette_matcher,
    ):
        """Initialize adapter.

        Args:
            cassette: Cassette to read from or append to
            mode: Replay or record
            inner: Adapter reaching the network in record mode
            matcher: Request matcher used in replay mode
        """
        super().__init__()
        self.cassette = cassette
        self.mode = mode
        self.inner = inner or HTTPAdapter()
        self.matcher = matcher

    def send(self, request, **kwargs):
        if self.mode == RecorderMode.REPLAY:
            interaction = self.cassette.find(request, self.matcher)
            logger.debug(f"Replaying {request.method} {request.url}")
            return self._build_response(request, interaction["response"])

        response = self.inner.send(request, **kwargs)
        self.cassette.add(self._record(request, response))
        return response

    @staticmethod
    def _record(request: requests.PreparedRequest, response: requests.Response) -> Interaction:
        body = "" if _is_file(request.body) else _text(request.body)
        headers = strip_auth_headers(request.headers)
        return {
            "request": {
                "method": request.method,
                "url": request.url,
                "headers": headers,
                "body": body,
                "form": _form_of(body, headers.get("Content-Type", "")),
            },
            "response": {
                "status": response.status_code,
                "headers": {name: value for name, value in response.headers.items()},
                "body": response.text,
            },
        }

    @staticmethod
    def _build_response(request: requests.PreparedRequest, recorded: Mapping[str, Any]) -> requests.Response:
        response = requests.Response()
        response.status_code = int(recorded.get("status", 200))
        response.headers = CaseInsensitiveDict(recorded.get("headers") or {})
        response.encoding = get_encoding_from_headers(response.headers)
        response.raw = io.BytesIO(_text(recorded.get("body")).encode("utf-8"))
        response.url = request.url
        response.request = request
        response.reason = http.client.responses.get(response.status_code, "")
        return response

    def close(self):
        self.inner.close()


def new_http_recorder(
    test_name: str,
    update: Optional[bool] = None,
    base_dir: Optional[Union[str, Path]] = None,
) -> Tuple[requests.Session, Callable[[], None]]:
    """Session recording to or replaying from the cassette of a test.

    The recorder sits below the retrying transport, so retried requests are
    recorded once per attempt. Replay does not wait between retries.

    Args:
        test_name: Name of the test, gives the cassette file name
        update: Record mode, TF_UPDATE_CASSETTES by default
        base_dir: Directory holding testdata/

    Returns:
        Tuple of (session, stop); stop() saves the cassette in record mode
    """
    if update is None:
        update = update_cassettes()
    path = get_test_file_path(test_name, CASSETTE_SUFFIX, base_dir)

    if update:
        recorder = RecorderAdapter(Cassette(path), RecorderMode.RECORD)
        strategy = RetryStrategy()
    else:
        recorder = RecorderAdapter(Cassette.load(path), RecorderMode.REPLAY)
        strategy = RetryStrategy(max_delay=0)

    session = new_retryable_session(inner=recorder, strategy=strategy)

    def stop() -> None:
        if recorder.mode == RecorderMode.RECORD:
            for interaction in recorder.cassette.interactions:
                interaction["response"]["body"] = anonymize_sensitive_fields(interaction["response"]["body"])
            recorder.cassette.save()
        session.close()

    return session, stop
