"""S3-compatible remote backend (requires ``pip install textlayer[s3]``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

try:
    import aioboto3
except ImportError as exc:
    raise ImportError(
        "S3 storage backend requires aioboto3. Install it with: pip install textlayer[s3]"
    ) from exc

from botocore.exceptions import ClientError

from textlayer.lib.exceptions import AssetNotFoundError
from textlayer.lib.storage.base import RemoteEntry, RemoteObject, matches_category

if TYPE_CHECKING:
    from textlayer.config import S3Config

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _is_not_found(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES


def _content_type(name: str) -> str:
    suffix = name.rsplit(".", 1)[-1].lower()
    return {
        "png": "image/png",
        "jpg": "image/jpeg",
        "webp": "image/webp",
        "gif": "image/gif",
    }.get(suffix, "application/octet-stream")


class S3RemoteBackend:
    """Keep assets in an S3-compatible bucket.

    Expiration and ownership travel as S3 user metadata
    (``x-amz-meta-expires-at`` etc.). Object keys are
    ``<prefix>/<namespace>/<name>``; ids handed back to callers omit the prefix.
    """

    def __init__(self, config: S3Config, name: str = "s3") -> None:
        if not config.bucket:
            raise ValueError("storage.remote.s3.bucket must be set for the s3 backend")
        self.name = name
        self._config = config
        self._session = aioboto3.Session(
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
        )

    def _client(self):
        return self._session.client("s3", endpoint_url=self._config.endpoint_url)

    def _object_key(self, asset_id: str) -> str:
        prefix = self._config.prefix.strip("/")
        return f"{prefix}/{asset_id}" if prefix else asset_id

    def _asset_id(self, object_key: str) -> str:
        prefix = self._config.prefix.strip("/")
        if prefix and object_key.startswith(f"{prefix}/"):
            return object_key[len(prefix) + 1:]
        return object_key

    async def upload(
        self, data: bytes, name: str, namespace: str, metadata: dict[str, str]
    ) -> RemoteObject:
        asset_id = f"{namespace.strip('/')}/{name}" if namespace else name
        params = {
            "Bucket": self._config.bucket,
            "Key": self._object_key(asset_id),
            "Body": data,
            "ContentType": _content_type(name),
            "Metadata": metadata,
        }
        if self._config.acl:
            params["ACL"] = self._config.acl

        async with self._client() as s3:
            await s3.put_object(**params)
            url = await self._url_for(s3, asset_id)
        return RemoteObject(id=asset_id, url=url)

    async def list(self, namespace: str = "", category: str | None = None) -> list[RemoteEntry]:
        """List objects; metadata is left empty (S3 listings do not carry it)."""
        prefix = self._object_key(f"{namespace.strip('/')}/") if namespace else self._object_key("")
        entries: list[RemoteEntry] = []
        async with self._client() as s3:
            paginator = s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self._config.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    asset_id = self._asset_id(obj["Key"])
                    if matches_category(asset_id, category):
                        entries.append(RemoteEntry(name=asset_id))
        return entries

    async def get_metadata(self, name: str) -> dict[str, str]:
        async with self._client() as s3:
            try:
                head = await s3.head_object(Bucket=self._config.bucket, Key=self._object_key(name))
            except ClientError as exc:
                if _is_not_found(exc):
                    raise AssetNotFoundError(f"Remote object not found: {name}") from exc
                raise
        return dict(head.get("Metadata", {}))

    async def download(self, name: str) -> bytes:
        async with self._client() as s3:
            try:
                obj = await s3.get_object(Bucket=self._config.bucket, Key=self._object_key(name))
            except ClientError as exc:
                if _is_not_found(exc):
                    raise AssetNotFoundError(f"Remote object not found: {name}") from exc
                raise
            async with obj["Body"] as body:
                return await body.read()

    async def delete(self, name: str) -> None:
        # S3 treats deleting a missing key as success
        async with self._client() as s3:
            await s3.delete_object(Bucket=self._config.bucket, Key=self._object_key(name))

    async def _url_for(self, s3, asset_id: str) -> str:
        key = self._object_key(asset_id)
        if self._config.public_url:
            return f"{self._config.public_url.rstrip('/')}/{key}"
        if self._config.acl == "public-read":
            if self._config.endpoint_url:
                return f"{self._config.endpoint_url.rstrip('/')}/{self._config.bucket}/{key}"
            return f"https://{self._config.bucket}.s3.{self._config.region}.amazonaws.com/{key}"
        return await s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._config.bucket, "Key": key},
            ExpiresIn=self._config.presign_ttl,
        )

    async def close(self) -> None:
        """Clients are opened per call; nothing to release."""
