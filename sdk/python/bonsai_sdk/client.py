"""
Bonsai SDK - Client

Synchronous and asynchronous clients for the Bonsai proving API.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar, Union

import httpx
from loguru import logger

from .config import ClientConfig
from .errors import (
    ConfigurationError,
    DownloadError,
    NetworkError,
    NotFoundError,
    RequestTimeoutError,
    ServerError,
    UnexpectedVariantError,
)
from .models import (
    ImageExists,
    ImageNew,
    ImageUploadOutcome,
    Quotas,
    SessionStatusResponse,
    require_field,
    SnarkStatusResponse,
    UploadResponse,
    VersionInfo,
)

T = TypeVar("T")

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


class SessionId:
    """
    Handle to a proving session running on Bonsai.

    Every method performs a request through ``client``. With an
    ``AsyncClient`` the methods return awaitables.
    """

    def __init__(self, uuid: str):
        self.uuid = uuid

    def status(self, client: "AnyClient") -> SessionStatusResponse:
        """Fetch the current session status."""
        return client._get(
            f"sessions/status/{self.uuid}",
            lambda r: SessionStatusResponse.from_dict(_json(r)),
        )

    def logs(self, client: "AnyClient") -> str:
        """Fetch the session logs as plain text."""
        return client._get(f"sessions/logs/{self.uuid}", lambda r: r.text)

    def stop(self, client: "AnyClient") -> None:
        """Ask the server to abort the session."""
        return client._get(f"sessions/stop/{self.uuid}", lambda r: None)

    def exec_only_journal(self, client: "AnyClient") -> bytes:
        """Fetch the journal written by an execute-only session."""
        return client._get(f"sessions/exec_only_journal/{self.uuid}", lambda r: r.content)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SessionId) and other.uuid == self.uuid

    def __hash__(self) -> int:
        return hash(self.uuid)

    def __repr__(self) -> str:
        return f"SessionId({self.uuid!r})"


class SnarkId:
    """Handle to a SNARK wrapping job running on Bonsai."""

    def __init__(self, uuid: str):
        self.uuid = uuid

    def status(self, client: "AnyClient") -> SnarkStatusResponse:
        """Fetch the current SNARK job status."""
        return client._get(
            f"snark/status/{self.uuid}",
            lambda r: SnarkStatusResponse.from_dict(_json(r)),
        )

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SnarkId) and other.uuid == self.uuid

    def __hash__(self) -> int:
        return hash(self.uuid)

    def __repr__(self) -> str:
        return f"SnarkId({self.uuid!r})"


def _uuid_of(handle: Union[SessionId, str]) -> str:
    return handle.uuid if isinstance(handle, SessionId) else str(handle)


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        raise UnexpectedVariantError(
            f"Expected a JSON body from {response.request.url}, got {response.text[:200]!r}"
        ) from None


def _parse_hex_byte(chunk: str) -> int:
    # Only the leading hex digits count; a chunk with none decodes to 0
    match = _HEX_DIGITS.match(chunk)
    return int(match.group(), 16) if match else 0


class BaseClient:
    """Base client with common functionality."""

    def __init__(self, config: ClientConfig):
        self.config = config

    @property
    def url(self) -> str:
        return self.config.url

    def _build_url(self, path: str) -> str:
        """Build full URL from path."""
        return f"{self.url}/{path.lstrip('/')}"

    def _check_response(
        self,
        response: httpx.Response,
        expected: Optional[Tuple[int, ...]] = (200,),
        not_found: Optional[str] = None,
    ) -> httpx.Response:
        """
        Raise unless ``response`` has an accepted status.

        Args:
            response: Response to check
            expected: Accepted status codes, or None for any 2xx
            not_found: If set, a 404 raises NotFoundError with this message
        """
        if expected is None:
            ok = response.is_success
        else:
            ok = response.status_code in expected
        if ok:
            return response

        logger.debug(
            "{} {} -> {}", response.request.method, response.request.url, response.status_code
        )
        if not_found is not None and response.status_code == 404:
            raise NotFoundError(not_found, body=response.text)
        raise ServerError.from_response(response)

    @staticmethod
    def _image_outcome(response: httpx.Response) -> ImageUploadOutcome:
        if response.status_code == 204:
            return ImageExists()
        return ImageNew(url=require_field(_json(response), "url"))

    @staticmethod
    def _input_payload(encoded: str) -> bytes:
        """Decode a hex input string into the bytes that get uploaded."""
        if not encoded:
            raise ValueError("Input must be a non-empty hex string")
        decoded = bytes(
            _parse_hex_byte(encoded[i:i + 2]) for i in range(0, len(encoded), 2)
        )
        # The first decoded byte is never uploaded
        return decoded[1:]

    @staticmethod
    def _session_body(
        img_id: str,
        input_id: str,
        assumptions: List[str],
        execute_only: bool,
        exec_cycle_limit: Optional[int],
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "img": img_id,
            "input": input_id,
            "assumptions": list(assumptions),
            "execute_only": execute_only,
        }
        if exec_cycle_limit is not None:
            body["exec_cycle_limit"] = exec_cycle_limit
        return body

    @staticmethod
    def _http_options(config: ClientConfig, transport: Optional[Any]) -> Dict[str, Any]:
        options: Dict[str, Any] = {"headers": config.headers, "timeout": config.timeout}
        if transport is not None:
            options["transport"] = transport
        return options

class Client(BaseClient):
    """Synchronous client for the Bonsai API."""

    def __init__(self, config: ClientConfig, transport: Optional[httpx.BaseTransport] = None):
        super().__init__(config)
        try:
            self._session = httpx.Client(**self._http_options(config, transport))
        except Exception as e:
            raise ConfigurationError(f"Failed to construct HTTP client: {e}") from e

    @classmethod
    def from_parts(
        cls,
        url: str,
        api_key: str,
        risc0_version: str,
        transport: Optional[httpx.BaseTransport] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Client":
        """Create a client from an explicit URL and API key."""
        return cls(ClientConfig.from_parts(url, api_key, risc0_version, environ), transport)

    @classmethod
    def from_env(
        cls,
        risc0_version: str,
        transport: Optional[httpx.BaseTransport] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Client":
        """Create a client from the ``BONSAI_API_URL`` / ``BONSAI_API_KEY`` environment."""
        return cls(ClientConfig.from_env(risc0_version, environ), transport)

    def close(self) -> None:
        """Close the client session."""
        self._session.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make HTTP request."""
        logger.debug("{} {}", method, url)
        try:
            return self._session.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Request timed out: {e}", self.config.timeout) from e
        except httpx.RequestError as e:
            raise NetworkError(f"Network error: {e}") from e

    def _get(self, path: str, decode: Callable[[httpx.Response], T]) -> T:
        response = self._request("GET", self._build_url(path))
        return decode(self._check_response(response))

    # -- uploads -------------------------------------------------------------

    def get_image_upload_url(self, image_id: str) -> ImageUploadOutcome:
        """Ask whether ``image_id`` must be uploaded, and where to."""
        response = self._request("GET", self._build_url(f"images/upload/{image_id}"))
        self._check_response(response, expected=(200, 204))
        return self._image_outcome(response)

    def put_data(self, url: str, body: bytes) -> None:
        """PUT raw bytes to a presigned URL."""
        logger.debug("PUT {} ({} bytes)", url, len(body))
        try:
            response = self._session.put(url, content=bytes(body))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ServerError(str(e)) from e
        self._check_response(response, expected=None)

    def upload_img(self, image_id: str, buf: bytes) -> bool:
        """
        Upload a program image unless the server already has it.

        Returns:
            True if the image already existed and nothing was uploaded
        """
        outcome = self.get_image_upload_url(image_id)
        if isinstance(outcome, ImageExists):
            return True
        if isinstance(outcome, ImageNew):
            self.put_data(outcome.url, buf)
            return False
        raise UnexpectedVariantError("Unexpected response from get_image_upload_url")

    def get_upload_url(self, route: str) -> UploadResponse:
        """Request a presigned upload URL for ``inputs`` or ``receipts``."""
        return self._get(f"{route}/upload", lambda r: UploadResponse.from_dict(_json(r)))

    def upload_input(self, encoded: str) -> str:
        """
        Upload a hex-encoded input.

        The first decoded byte is dropped before upload.

        Returns:
            The input id to pass to ``create_session``
        """
        payload = self._input_payload(encoded)
        upload = self.get_upload_url("inputs")
        self.put_data(upload.url, payload)
        return upload.uuid

    def upload_receipt(self, buf: bytes) -> str:
        """Upload a serialized receipt, returning its id (usable as an assumption)."""
        upload = self.get_upload_url("receipts")
        self.put_data(upload.url, buf)
        return upload.uuid

    # -- sessions ------------------------------------------------------------

    def create_session_with_limit(
        self,
        img_id: str,
        input_id: str,
        assumptions: List[str],
        execute_only: bool = False,
        exec_cycle_limit: Optional[int] = None,
    ) -> SessionId:
        """
        Start a proving session.

        Args:
            img_id: Image id of an uploaded program
            input_id: Id returned by ``upload_input``
            assumptions: Receipt ids the guest composes over, in order
            execute_only: Run the executor only, without proving
            exec_cycle_limit: Cycle limit in millions of cycles

        Returns:
            Handle of the new session
        """
        body = self._session_body(img_id, input_id, assumptions, execute_only, exec_cycle_limit)
        response = self._request("POST", self._build_url("sessions/create"), json=body)
        self._check_response(response, expected=None)
        return SessionId(require_field(_json(response), "uuid"))

    def create_session(
        self,
        img_id: str,
        input_id: str,
        assumptions: List[str],
        execute_only: bool = False,
    ) -> SessionId:
        """Start a proving session without a cycle limit."""
        return self.create_session_with_limit(img_id, input_id, assumptions, execute_only)

    def create_snark(self, session_id: Union[SessionId, str]) -> SnarkId:
        """Start a SNARK wrapping job for a finished session."""
        body = {"session_id": _uuid_of(session_id)}
        response = self._request("POST", self._build_url("snark/create"), json=body)
        self._check_response(response, expected=None)
        return SnarkId(require_field(_json(response), "uuid"))

    # -- downloads -----------------------------------------------------------

    def receipt_download(self, session_id: Union[SessionId, str]) -> bytes:
        """
        Download the receipt of a finished session.

        Raises:
            NotFoundError: If the session has no receipt
        """
        response = self._request("GET", self._build_url(f"receipts/{_uuid_of(session_id)}"))
        self._check_response(response, expected=None, not_found="Receipt not found")
        return self.download(require_field(_json(response), "url"))

    def download(self, url: str) -> bytes:
        """Fetch raw bytes from ``url``."""
        logger.debug("GET {}", url)
        try:
            response = self._session.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DownloadError(f"Download failed: {e}") from e
        return self._check_response(response, expected=None).content

    # -- account -------------------------------------------------------------

    def image_delete(self, image_id: str) -> None:
        """Delete an uploaded image."""
        response = self._request("DELETE", self._build_url(f"images/{image_id}"))
        self._check_response(response, expected=None)

    def input_delete(self, input_uuid: str) -> None:
        """Delete an uploaded input."""
        response = self._request("DELETE", self._build_url(f"inputs/{input_uuid}"))
        self._check_response(response, expected=None)

    def version(self) -> VersionInfo:
        """Get the risc0-zkvm versions supported by the server."""
        return self._get("version", lambda r: VersionInfo.from_dict(_json(r)))

    def quotas(self) -> Quotas:
        """Get the quotas of the current API key."""
        return self._get("user/quotas", lambda r: Quotas.from_dict(_json(r)))


class AsyncClient(BaseClient):
    """Asynchronous client for the Bonsai API."""

    def __init__(self, config: ClientConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        try:
            self._session = httpx.AsyncClient(**self._http_options(config, transport))
        except Exception as e:
            raise ConfigurationError(f"Failed to construct HTTP client: {e}") from e

    @classmethod
    def from_parts(
        cls,
        url: str,
        api_key: str,
        risc0_version: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "AsyncClient":
        """Create a client from an explicit URL and API key."""
        return cls(ClientConfig.from_parts(url, api_key, risc0_version, environ), transport)

    @classmethod
    def from_env(
        cls,
        risc0_version: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "AsyncClient":
        """Create a client from the ``BONSAI_API_URL`` / ``BONSAI_API_KEY`` environment."""
        return cls(ClientConfig.from_env(risc0_version, environ), transport)

    async def close(self) -> None:
        """Close the client session."""
        await self._session.aclose()

    async def __aenter__(self) -> "AsyncClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make async HTTP request."""
        logger.debug("{} {}", method, url)
        try:
            return await self._session.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Request timed out: {e}", self.config.timeout) from e
        except httpx.RequestError as e:
            raise NetworkError(f"Network error: {e}") from e

    async def _get(self, path: str, decode: Callable[[httpx.Response], T]) -> T:
        response = await self._request("GET", self._build_url(path))
        return decode(self._check_response(response))

    async def get_image_upload_url(self, image_id: str) -> ImageUploadOutcome:
        """Ask whether ``image_id`` must be uploaded, and where to."""
        response = await self._request("GET", self._build_url(f"images/upload/{image_id}"))
        self._check_response(response, expected=(200, 204))
        return self._image_outcome(response)

    async def put_data(self, url: str, body: bytes) -> None:
        """PUT raw bytes to a presigned URL."""
        logger.debug("PUT {} ({} bytes)", url, len(body))
        try:
            response = await self._session.put(url, content=bytes(body))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ServerError(str(e)) from e
        self._check_response(response, expected=None)

    async def upload_img(self, image_id: str, buf: bytes) -> bool:
        """Upload a program image; True if it already existed."""
        outcome = await self.get_image_upload_url(image_id)
        if isinstance(outcome, ImageExists):
            return True
        if isinstance(outcome, ImageNew):
            await self.put_data(outcome.url, buf)
            return False
        raise UnexpectedVariantError("Unexpected response from get_image_upload_url")

    async def get_upload_url(self, route: str) -> UploadResponse:
        """Request a presigned upload URL for ``inputs`` or ``receipts``."""
        return await self._get(f"{route}/upload", lambda r: UploadResponse.from_dict(_json(r)))

    async def upload_input(self, encoded: str) -> str:
        """Upload a hex-encoded input, minus its first byte; returns the input id."""
        payload = self._input_payload(encoded)
        upload = await self.get_upload_url("inputs")
        await self.put_data(upload.url, payload)
        return upload.uuid

    async def upload_receipt(self, buf: bytes) -> str:
        """Upload a serialized receipt, returning its id."""
        upload = await self.get_upload_url("receipts")
        await self.put_data(upload.url, buf)
        return upload.uuid

    async def create_session_with_limit(
        self,
        img_id: str,
        input_id: str,
        assumptions: List[str],
        execute_only: bool = False,
        exec_cycle_limit: Optional[int] = None,
    ) -> SessionId:
        """Start a proving session, optionally capped at ``exec_cycle_limit`` million cycles."""
        body = self._session_body(img_id, input_id, assumptions, execute_only, exec_cycle_limit)
        response = await self._request("POST", self._build_url("sessions/create"), json=body)
        self._check_response(response, expected=None)
        return SessionId(require_field(_json(response), "uuid"))

    async def create_session(
        self,
        img_id: str,
        input_id: str,
        assumptions: List[str],
        execute_only: bool = False,
    ) -> SessionId:
        """Start a proving session without a cycle limit."""
        return await self.create_session_with_limit(img_id, input_id, assumptions, execute_only)

    async def create_snark(self, session_id: Union[SessionId, str]) -> SnarkId:
        """Start a SNARK wrapping job for a finished session."""
        body = {"session_id": _uuid_of(session_id)}
        response = await self._request("POST", self._build_url("snark/create"), json=body)
        self._check_response(response, expected=None)
        return SnarkId(require_field(_json(response), "uuid"))

    async def receipt_download(self, session_id: Union[SessionId, str]) -> bytes:
        """Download the receipt of a finished session."""
        response = await self._request(
            "GET", self._build_url(f"receipts/{_uuid_of(session_id)}")
        )
        self._check_response(response, expected=None, not_found="Receipt not found")
        return await self.download(require_field(_json(response), "url"))

    async def download(self, url: str) -> bytes:
        """Fetch raw bytes from ``url``."""
        logger.debug("GET {}", url)
        try:
            response = await self._session.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DownloadError(f"Download failed: {e}") from e
        return self._check_response(response, expected=None).content

    async def image_delete(self, image_id: str) -> None:
        """Delete an uploaded image."""
        response = await self._request("DELETE", self._build_url(f"images/{image_id}"))
        self._check_response(response, expected=None)

    async def input_delete(self, input_uuid: str) -> None:
        """Delete an uploaded input."""
        response = await self._request("DELETE", self._build_url(f"inputs/{input_uuid}"))
        self._check_response(response, expected=None)

    async def version(self) -> VersionInfo:
        """Get the risc0-zkvm versions supported by the server."""
        return await self._get("version", lambda r: VersionInfo.from_dict(_json(r)))

    async def quotas(self) -> Quotas:
        """Get the quotas of the current API key."""
        return await self._get("user/quotas", lambda r: Quotas.from_dict(_json(r)))


AnyClient = Union[Client, AsyncClient]
