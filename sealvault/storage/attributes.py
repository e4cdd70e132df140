"""Join between stored blobs and their access policy, kept in blob attributes."""

from __future__ import annotations

from typing import Dict, Mapping, Optional
import logging

from ..errors import LinkageMissing
from ..policy.models import PolicyPair
from .blobstore import IBlobStore

logger = logging.getLogger(__name__)

CAP_ID_KEY = "capId"
WHITELIST_ID_KEY = "whitelistId"
LINKAGE_KEYS = (CAP_ID_KEY, WHITELIST_ID_KEY)


def linkage_from_attributes(attributes: Mapping[str, str]) -> Optional[PolicyPair]:
    whitelist_id = attributes.get(WHITELIST_ID_KEY)
    cap_id = attributes.get(CAP_ID_KEY)
    if not whitelist_id or not cap_id:
        return None
    return PolicyPair(whitelist_id=whitelist_id, cap_id=cap_id)


class AttributeIndex:
    def __init__(self, blob_store: IBlobStore, signer):
        self.blob_store = blob_store
        self.signer = signer

    def link(self, object_id: str, policy: PolicyPair, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Attach capId/whitelistId (plus any user attributes) to ``object_id``."""
        attributes = dict(extra or {})
        attributes.update(policy.to_attributes())
        self.blob_store.set_attributes(object_id, attributes, self.signer.address)
        logger.debug("Linked object %s to whitelist %s", object_id, policy.whitelist_id)
        return attributes

    def get(self, object_id: str) -> Dict[str, str]:
        return self.blob_store.get_attributes(object_id)

    def add(self, object_id: str, attributes: Mapping[str, str]) -> None:
        """Add user attributes. The linkage keys cannot be rewritten this way."""
        reserved = [key for key in attributes if key in LINKAGE_KEYS]
        if reserved:
            raise ValueError(f"{', '.join(reserved)} is managed by the access policy and cannot be set directly")
        if attributes:
            self.blob_store.set_attributes(object_id, dict(attributes), self.signer.address)

    def linkage(self, object_id: str) -> PolicyPair:
        policy = linkage_from_attributes(self.get(object_id))
        if policy is None:
            raise LinkageMissing(object_id)
        return policy
