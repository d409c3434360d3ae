from __future__ import annotations

from typing import Iterator

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from vault.errors import VaultError, VaultErrorKind
from vault.paths import folder_prefix, is_note_key
from vault.store import ListResult, NoteMetadata, VaultStore

NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}
ACCESS_DENIED_CODES = {"AccessDenied", "Forbidden", "403"}
CONTENT_TYPE = "text/markdown; charset=utf-8"


def classify_client_error(error: ClientError) -> VaultErrorKind:
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if code in NOT_FOUND_CODES or status == 404:
        return VaultErrorKind.NOT_FOUND
    if code in ACCESS_DENIED_CODES or status == 403:
        return VaultErrorKind.ACCESS_DENIED
    return VaultErrorKind.TRANSIENT


def _to_vault_error(error: Exception, action: str) -> VaultError:
    if isinstance(error, ClientError):
        kind = classify_client_error(error)
    else:
        kind = VaultErrorKind.TRANSIENT
    return VaultError(kind, f"S3 {action} failed: {error}")


class S3VaultStore(VaultStore):
    def __init__(self, bucket: str, *, client=None, region_name: str | None = None) -> None:
        if not bucket:
            raise RuntimeError("S3_BUCKET_NAME environment variable is not set")
        self.bucket = bucket
        self._client = client or boto3.client("s3", region_name=region_name)

    def _get(self, key: str) -> str | None:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            body = response["Body"].read()
        except (BotoCoreError, ClientError) as error:
            vault_error = _to_vault_error(error, "get_object")
            if vault_error.kind is VaultErrorKind.NOT_FOUND:
                return None
            raise vault_error from error
        return body.decode("utf-8")

    def _put(self, key: str, content: str) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content.encode("utf-8"),
                ContentType=CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as error:
            raise _to_vault_error(error, "put_object") from error

    def _head(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as error:
            vault_error = _to_vault_error(error, "head_object")
            if vault_error.kind is VaultErrorKind.NOT_FOUND:
                return False
            raise vault_error from error
        return True

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        continuation_token: str | None = None,
    ) -> ListResult:
        params = {
            "Bucket": self.bucket,
            "Prefix": folder_prefix(prefix),
            "Delimiter": "/",
            "MaxKeys": limit,
        }
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        try:
            response = self._client.list_objects_v2(**params)
        except (BotoCoreError, ClientError) as error:
            raise _to_vault_error(error, "list_objects_v2") from error

        files = [
            NoteMetadata(path=obj["Key"], last_modified=obj["LastModified"], size=obj["Size"])
            for obj in response.get("Contents", [])
            if is_note_key(obj.get("Key", ""))
        ]
        folders = [
            common["Prefix"] for common in response.get("CommonPrefixes", []) if common.get("Prefix")
        ]
        return ListResult(
            files=files,
            folders=folders,
            truncated=bool(response.get("IsTruncated", False)),
            continuation_token=response.get("NextContinuationToken"),
        )

    def iter_note_keys(self, prefix: str = "") -> Iterator[str]:
        params = {"Bucket": self.bucket, "Prefix": prefix, "MaxKeys": 1000}
        while True:
            try:
                response = self._client.list_objects_v2(**params)
            except (BotoCoreError, ClientError) as error:
                raise _to_vault_error(error, "list_objects_v2") from error

            for obj in response.get("Contents", []):
                key = obj.get("Key", "")
                if is_note_key(key):
                    yield key

            token = response.get("NextContinuationToken")
            if not token:
                return
            params["ContinuationToken"] = token
