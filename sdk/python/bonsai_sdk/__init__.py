"""
Bonsai Python SDK

A Python client library for the Bonsai zkVM proving service.

Example usage:
    import time

    from bonsai_sdk import Client

    client = Client.from_env(risc0_version="1.2.0")

    client.upload_img(image_id, elf_bytes)
    input_id = client.upload_input(input_hex)
    session = client.create_session(image_id, input_id, [])

    # Poll until the session finishes
    status = session.status(client)
    while status.status.is_running:
        time.sleep(15)
        status = session.status(client)

    receipt = client.receipt_download(session)

Logging goes through loguru and is disabled by default; turn it on with
``logger.enable("bonsai_sdk")``.
"""

from loguru import logger

from .client import Client, AsyncClient, SessionId, SnarkId
from .config import ClientConfig, lookup_env, resolve_timeout_ms
from .models import (
    JobStatus,
    SessionStats,
    SessionStatusResponse,
    SnarkStatusResponse,
    UploadResponse,
    ImageExists,
    ImageNew,
    ImageUploadOutcome,
    Quotas,
    VersionInfo,
)
from .receipt import ProofData, ReceiptDecoder, decode_receipt, get_seal_and_journal
from .errors import (
    BonsaiError,
    ConfigurationError,
    ServerError,
    NotFoundError,
    DownloadError,
    UnexpectedVariantError,
    NetworkError,
    RequestTimeoutError,
)

logger.disable("bonsai_sdk")

__version__ = "1.0.0"
__all__ = [
    # Client
    "Client",
    "AsyncClient",
    "SessionId",
    "SnarkId",
    # Config
    "ClientConfig",
    "lookup_env",
    "resolve_timeout_ms",
    # Models
    "JobStatus",
    "SessionStats",
    "SessionStatusResponse",
    "SnarkStatusResponse",
    "UploadResponse",
    "ImageExists",
    "ImageNew",
    "ImageUploadOutcome",
    "Quotas",
    "VersionInfo",
    # Receipts
    "ProofData",
    "ReceiptDecoder",
    "decode_receipt",
    "get_seal_and_journal",
    # Errors
    "BonsaiError",
    "ConfigurationError",
    "ServerError",
    "NotFoundError",
    "DownloadError",
    "UnexpectedVariantError",
    "NetworkError",
    "RequestTimeoutError",
]
