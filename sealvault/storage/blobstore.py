"""
Blob store contract.

Implementations provide raw calls shaped like the blob store's JSON output;
the public methods parse them into :mod:`sealvault.storage.models` records
and raise BlobStoreError / NotFound for anything unrecognized.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence
import logging

from ..errors import BlobStoreError, NotFound
from .models import BlobStoreInfo, StoredObject, UploadResult

logger = logging.getLogger(__name__)


# ============================================================================
# Boundary parsers
# ============================================================================

def parse_store_response(raw: Any) -> UploadResult:
    if not isinstance(raw, list) or not raw:
        raise BlobStoreError("Invalid store response: expected non-empty array")
    result = raw[0].get("blobStoreResult") if isinstance(raw[0], dict) else None
    if not isinstance(result, dict):
        raise BlobStoreError("Invalid store response: missing blobStoreResult")

    try:
        if "newlyCreated" in result:
            created = result["newlyCreated"]
            blob = created["blobObject"]
            operation = created.get("resourceOperation") or {}
            encoded = (
                (operation.get("registerFromScratch") or {}).get("encodedLength")
                or (operation.get("reuseStorage") or {}).get("encodedLength")
                or 0
            )
            return UploadResult(
                object_id=blob["id"],
                content_id=blob["blobId"],
                storage_cost=int(created["cost"]),
                unencoded_size=int(blob["size"]),
                encoded_size=int(encoded),
                encoding_type=blob.get("encodingType", "RS2"),
            )
        if "alreadyCertified" in result:
            certified = result["alreadyCertified"]
            return UploadResult(
                object_id=certified["object"],
                content_id=certified["blobId"],
                storage_cost=0,
                unencoded_size=0,
                encoded_size=0,
                encoding_type="RS2",
                newly_created=False,
            )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise BlobStoreError(f"Malformed store response: {exc}") from exc
    raise BlobStoreError(f"Unexpected store response structure: {sorted(result)}")


def parse_attributes(raw: Any) -> Dict[str, str]:
    if not isinstance(raw, dict):
        raise BlobStoreError(f"Unrecognized attribute response: {raw!r}")
    attribute = raw.get("attribute")
    if attribute is None:
        return {}
    metadata = (attribute.get("metadata") or {}) if isinstance(attribute, dict) else None
    if not isinstance(metadata, dict):
        raise BlobStoreError(f"Unrecognized attribute response: {raw!r}")
    contents = metadata.get("contents") or []
    if not isinstance(contents, list):
        raise BlobStoreError(f"Malformed attribute contents: {contents!r}")
    try:
        return {str(item["key"]): str(item["value"]) for item in contents}
    except (KeyError, TypeError) as exc:
        raise BlobStoreError(f"Malformed attribute entry: {exc}") from exc


# ============================================================================
# Contract
# ============================================================================

class IBlobStore(ABC):
    """Content-addressed upload/download with epoch retention and per-object attributes."""

    @abstractmethod
    def _store(self, data: bytes, epochs: int, deletable: bool, owner: str) -> Any: ...

    @abstractmethod
    def _read(self, content_id: str) -> bytes:
        """Raise KeyError when the content id is unknown."""

    @abstractmethod
    def _list_blobs(self, owner: str, include_expired: bool) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def _get_attributes(self, object_id: str) -> Any:
        """Raise KeyError when the object is unknown."""

    @abstractmethod
    def _set_attributes(self, object_id: str, attributes: Dict[str, str], owner: str) -> None: ...

    @abstractmethod
    def _burn(self, object_ids: Sequence[str], owner: str) -> None: ...

    @abstractmethod
    def _info(self) -> Dict[str, Any]: ...

    def store_blob(self, data: bytes, epochs: int, deletable: bool, owner: str) -> UploadResult:
        try:
            raw = self._store(data, epochs, deletable, owner)
        except OSError as exc:
            raise BlobStoreError(f"Upload failed: {exc}") from exc
        upload = parse_store_response(raw)
        logger.info("Stored blob %s as object %s (cost %d)", upload.content_id, upload.object_id, upload.storage_cost)
        return upload

    def read_blob(self, content_id: str) -> bytes:
        try:
            return self._read(content_id)
        except KeyError:
            raise NotFound("blob", content_id) from None
        except OSError as exc:
            raise BlobStoreError(f"Download of {content_id} failed: {exc}") from exc

    def list_blobs(self, owner: str, include_expired: bool = False) -> List[StoredObject]:
        try:
            raws = self._list_blobs(owner, include_expired)
        except OSError as exc:
            raise BlobStoreError(f"Listing blobs failed: {exc}") from exc
        if not isinstance(raws, list):
            raise BlobStoreError(f"Unrecognized listing response: {raws!r}")
        try:
            return [StoredObject.from_dict(raw) for raw in raws]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise BlobStoreError(f"Malformed blob object in listing: {exc}") from exc

    def get_attributes(self, object_id: str) -> Dict[str, str]:
        try:
            raw = self._get_attributes(object_id)
        except KeyError:
            raise NotFound("blob object", object_id) from None
        except OSError as exc:
            raise BlobStoreError(f"Reading attributes of {object_id} failed: {exc}") from exc
        return parse_attributes(raw)

    def set_attributes(self, object_id: str, attributes: Dict[str, str], owner: str) -> None:
        try:
            self._set_attributes(object_id, attributes, owner)
        except KeyError:
            raise NotFound("blob object", object_id) from None
        except OSError as exc:  # includes PermissionError for non-owners
            raise BlobStoreError(f"Setting attributes of {object_id} failed: {exc}") from exc

    def burn_blobs(self, object_ids: Sequence[str], owner: str) -> None:
        try:
            self._burn(object_ids, owner)
        except KeyError as exc:
            raise NotFound("blob object", str(exc.args[0]) if exc.args else "") from None
        except OSError as exc:
            raise BlobStoreError(f"Burning blobs failed: {exc}") from exc

    def info(self) -> BlobStoreInfo:
        try:
            return BlobStoreInfo.from_dict(self._info())
        except OSError as exc:
            raise BlobStoreError(f"Blob store info unavailable: {exc}") from exc
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise BlobStoreError(f"Unrecognized info response: {exc}") from exc
