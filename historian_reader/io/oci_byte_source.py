from __future__ import annotations

import logging
from typing import Any

from oci.auth.signers import InstancePrincipalsSecurityTokenSigner
from oci.config import from_file
from oci.exceptions import ServiceError
from oci.object_storage import ObjectStorageClient
from oci.signer import Signer

LOGGER = logging.getLogger(__name__)


def build_object_storage_client(
    *,
    region: str | None = None,
    auth_mode: str = "instance_principal",
    oci_config_file: str | None = None,
    oci_profile: str = "DEFAULT",
) -> ObjectStorageClient:
    """
    Create an OCI Object Storage client.

    Authentication modes:
      - "instance_principal":
          Uses the OCI Instance Principal of the current Compute instance.
          Suitable only when running on OCI infrastructure.
      - "api_key":
          Uses a user-scoped OCI API key (private PEM key + config file).
          Suitable for local development, CI, and non-OCI environments.
    """
    if auth_mode == "instance_principal":
        signer = InstancePrincipalsSecurityTokenSigner()
        config: dict[str, Any] = {}

    elif auth_mode == "api_key":
        if oci_config_file is None:
            raise ValueError("oci_config_file is required for api_key auth")

        config = from_file(
            file_location=oci_config_file,
            profile_name=oci_profile,
        )
        signer = Signer(
            tenancy=config["tenancy"],
            user=config["user"],
            fingerprint=config["fingerprint"],
            private_key_file_location=config["key_file"],
            pass_phrase=config.get("pass_phrase"),
        )

    else:
        raise ValueError(f"Unknown auth_mode: {auth_mode}")

    client_kwargs = {}
    if region:
        client_kwargs["region"] = region

    return ObjectStorageClient(
        config=config,
        signer=signer,
        **client_kwargs,
    )


class OCIObjectByteSource:
    """
    ByteSource over one object in OCI Object Storage.

    Every ``read_at`` is a ranged GET and the object size is fetched once
    with a HEAD request. Fixed-stride splits transfer the header, their own
    range and the overrun of their last record. Variable-length splits also
    walk the record chain from the header end or the nearest cached anchor,
    which can mean fetching most of the file prefix.

    Storage failures surface as ``OSError`` (``FileNotFoundError`` for a
    missing object) so callers handle local and remote files alike.
    """

    def __init__(
        self,
        *,
        client: Any,
        namespace: str,
        bucket: str,
        key: str,
    ) -> None:
        self._client = client
        self._namespace = namespace
        self._bucket = bucket
        self._key = key
        self._size: int | None = None

    @property
    def identity(self) -> str:
        return f"oci://{self._bucket}/{self._key}"

    def size(self) -> int:
        if self._size is None:
            try:
                resp = self._client.head_object(
                    namespace_name=self._namespace,
                    bucket_name=self._bucket,
                    object_name=self._key,
                )
            except ServiceError as exc:
                raise self._storage_error(exc) from exc
            self._size = int(resp.headers.get("content-length", "0"))
        return self._size

    def read_at(self, offset: int, length: int) -> bytes:
        end = min(offset + length, self.size())
        if length <= 0 or offset >= end:
            return b""

        try:
            resp = self._client.get_object(
                namespace_name=self._namespace,
                bucket_name=self._bucket,
                object_name=self._key,
                range=f"bytes={offset}-{end - 1}",
            )
        except ServiceError as exc:
            raise self._storage_error(exc) from exc
        data = _read_body(resp.data)

        if len(data) < end - offset:
            LOGGER.warning(
                "Short ranged read",
                extra={"source": self.identity, "offset": offset, "received": len(data)},
            )
        return data

    def close(self) -> None:
        return

    def _storage_error(self, exc: ServiceError) -> OSError:
        message = f"{self.identity}: {exc.status} {exc.code}"
        if exc.status == 404:
            return FileNotFoundError(message)
        return OSError(message)


def _read_body(d: Any) -> bytes:
    """
    Normalize OCI response bodies into bytes.

    The OCI Python SDK exposes response bodies in different shapes
    depending on transport and SDK version.
    """
    # Case 1: direct .read()
    if hasattr(d, "read") and callable(getattr(d, "read")):
        return d.read()

    # Case 2: .content (bytes already)
    if hasattr(d, "content"):
        return d.content

    # Case 3: raw.read()
    if hasattr(d, "raw") and hasattr(d.raw, "read") and callable(getattr(d.raw, "read")):
        return d.raw.read()

    # Case 4: stream chunks (fallback)
    if hasattr(d, "raw") and hasattr(d.raw, "stream") and callable(getattr(d.raw, "stream")):
        return b"".join(d.raw.stream(1024 * 1024, decode_content=False))

    raise TypeError("Unsupported OCI get_object response type; no readable data attribute found.")


class OCIObjectByteSourceFactory:
    """Creates OCIObjectByteSource instances sharing one client."""

    def __init__(self, *, client: Any, bucket: str, namespace: str | None = None) -> None:
        self._client = client
        self._bucket = bucket
        self._namespace = namespace if namespace is not None else client.get_namespace().data

    def __call__(self, key: str) -> OCIObjectByteSource:
        return OCIObjectByteSource(
            client=self._client,
            namespace=self._namespace,
            bucket=self._bucket,
            key=key,
        )
